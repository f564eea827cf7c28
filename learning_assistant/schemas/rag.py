"""Question answering schemas"""

from pydantic import BaseModel, Field
from typing import List


class AskRequest(BaseModel):
    """Student question"""
    question: str = Field(..., min_length=1, max_length=500)


class SourceItem(BaseModel):
    """Citation of a retrieved chunk"""
    document_id: int
    document_title: str
    snippet: str
    similarity: int


class AskResponse(BaseModel):
    """Grounded answer with citations"""
    answer: str
    sources: List[SourceItem] = []
    confidence: int
    question: str
    mode: str


class TopicsResponse(BaseModel):
    """Topics covered by a course's processed documents"""
    topics: List[str] = []
    suggested_questions: List[str] = []
    documents_count: int
