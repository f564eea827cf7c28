"""Document management API endpoints"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session
from typing import Optional
import logging

from learning_assistant.database.session import get_db
from learning_assistant.rag.factory import get_pipeline
from learning_assistant.rag.pipeline import EmbeddingPipeline
from learning_assistant.schemas.document import (
    ContentReplaceRequest,
    DocumentListResponse,
    DocumentResponse,
    DocumentUploadResponse,
    TextUploadRequest
)
from learning_assistant.security.auth import get_current_user_id
from learning_assistant.services.document_service import DocumentService
from learning_assistant.services.task_runner import BackgroundTaskRunner, get_task_runner

logger = logging.getLogger(__name__)

router = APIRouter()


def get_document_service(
    pipeline: EmbeddingPipeline = Depends(get_pipeline),
    task_runner: BackgroundTaskRunner = Depends(get_task_runner)
) -> DocumentService:
    return DocumentService(pipeline, task_runner)


@router.post("/documents/text/{course_id}", response_model=DocumentUploadResponse, status_code=201)
async def upload_text_document(
    course_id: int,
    request: TextUploadRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    service: DocumentService = Depends(get_document_service)
):
    """
    Add a text document to a course

    Processing (chunking and embedding) happens in background; poll the
    document to follow its status.
    """
    document = service.upload_text(db, user_id, course_id, request.title, request.content, request.topics)
    return DocumentUploadResponse(
        success=True,
        document=DocumentResponse.model_validate(document),
        message="Document uploaded successfully and queued for processing"
    )


@router.post("/documents/upload/{course_id}", response_model=DocumentUploadResponse, status_code=201)
async def upload_file_document(
    course_id: int,
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    service: DocumentService = Depends(get_document_service)
):
    """
    Upload a file to a course

    Supports: PDF, DOCX, TXT
    Max size: 10MB
    """
    data = await file.read()
    document = service.upload_file(
        db,
        user_id,
        course_id,
        filename=file.filename,
        data=data,
        content_type=file.content_type,
        title=title
    )
    return DocumentUploadResponse(
        success=True,
        document=DocumentResponse.model_validate(document),
        message="Document uploaded successfully and queued for processing"
    )


@router.get("/documents/course/{course_id}", response_model=DocumentListResponse)
async def list_course_documents(
    course_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    service: DocumentService = Depends(get_document_service)
):
    """List a course's documents with their processing status"""
    documents = service.list_course_documents(db, user_id, course_id)
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(doc) for doc in documents],
        total=len(documents)
    )


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    service: DocumentService = Depends(get_document_service)
):
    """Get one document's processing status"""
    return DocumentResponse.model_validate(service.get_document(db, user_id, document_id))


@router.put("/documents/{document_id}/content", response_model=DocumentResponse)
async def replace_document_content(
    document_id: int,
    request: ContentReplaceRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    service: DocumentService = Depends(get_document_service)
):
    """Replace a document's text; it leaves retrieval until reprocessing finishes"""
    document = service.replace_content(db, user_id, document_id, request.content)
    return DocumentResponse.model_validate(document)


@router.post("/documents/{document_id}/reprocess", response_model=DocumentResponse)
async def reprocess_document(
    document_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    service: DocumentService = Depends(get_document_service)
):
    """Run chunking and embedding again"""
    document = service.reprocess(db, user_id, document_id)
    logger.info(f"Reprocessing document {document_id} requested by user {user_id}")
    return DocumentResponse.model_validate(document)
