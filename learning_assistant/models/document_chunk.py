"""Document chunk model holding text and embedding vector"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from learning_assistant.database.base import Base


class DocumentChunk(Base):
    """Chunk of a document; vector is null when embedding failed"""

    __tablename__ = "document_chunks"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    chunk_text = Column(Text, nullable=False)
    token_count = Column(Integer, nullable=True)
    vector = Column(JSON(none_as_null=True), nullable=True)
    embedding_model = Column(String(255), nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    document = relationship("Document", back_populates="chunks")

    __table_args__ = (
        Index('idx_document_chunk', 'document_id', 'chunk_index'),
    )

    def __repr__(self):
        return f"<DocumentChunk(id={self.id}, document_id={self.document_id}, index={self.chunk_index})>"
