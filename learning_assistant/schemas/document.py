"""Document schemas"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class TextUploadRequest(BaseModel):
    """Text document upload"""
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=10)
    topics: List[str] = Field(default_factory=list, max_length=20)


class ContentReplaceRequest(BaseModel):
    """Replace a document's text"""
    content: str = Field(..., min_length=10)


class DocumentResponse(BaseModel):
    """Document with processing state"""
    id: int
    course_id: int
    title: str
    source_type: str
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    word_count: int = 0
    topics: Optional[List[str]] = None
    status: str
    processing_error: Optional[str] = None
    chunks_count: int = 0
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    """Documents of a course"""
    items: List[DocumentResponse]
    total: int


class DocumentUploadResponse(BaseModel):
    """Upload acknowledgement; processing continues in background"""
    success: bool
    document: DocumentResponse
    message: str
