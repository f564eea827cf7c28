"""Document model"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Index, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from learning_assistant.database.base import Base


class DocumentStatus(str, enum.Enum):
    """Processing status of a document"""
    UNPROCESSED = "unprocessed"
    PROCESSING = "processing"
    PROCESSED = "processed"
    PARTIALLY_PROCESSED = "partially_processed"
    FAILED = "failed"


# Statuses whose chunks are visible to retrieval
RETRIEVABLE_STATUSES = (DocumentStatus.PROCESSED.value, DocumentStatus.PARTIALLY_PROCESSED.value)


class Document(Base):
    """Course material uploaded by a teacher"""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by = Column(Integer, nullable=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False, default="")
    source_type = Column(String(20), default="text", nullable=False)  # text, file
    file_name = Column(String(500), nullable=True)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)  # Size in bytes
    word_count = Column(Integer, default=0, nullable=False)
    topics = Column(JSON, default=list, nullable=True)  # Subject tags given at upload
    status = Column(String(30), default=DocumentStatus.UNPROCESSED.value, nullable=False, index=True)
    processing_error = Column(Text, nullable=True)
    # Bumped on every (re)submission; a pipeline run only writes if it still matches
    processing_generation = Column(Integer, default=0, nullable=False)
    chunks_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    processed_at = Column(DateTime, nullable=True)

    # Relationships
    course = relationship("Course", back_populates="documents")
    chunks = relationship(
        "DocumentChunk",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentChunk.chunk_index"
    )

    __table_args__ = (
        Index('idx_course_active_status', 'course_id', 'is_active', 'status'),
    )

    def __repr__(self):
        return f"<Document(id={self.id}, title={self.title}, status={self.status})>"
