"""Database models package"""

from learning_assistant.models.course import Course, CourseEnrollment
from learning_assistant.models.document import Document, DocumentStatus, RETRIEVABLE_STATUSES
from learning_assistant.models.document_chunk import DocumentChunk

__all__ = [
    "Course",
    "CourseEnrollment",
    "Document",
    "DocumentStatus",
    "RETRIEVABLE_STATUSES",
    "DocumentChunk"
]
