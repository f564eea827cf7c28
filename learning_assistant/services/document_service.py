"""Document management service"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from learning_assistant.config import settings
from learning_assistant.exceptions import DocumentNotFoundException, ValidationException
from learning_assistant.models.document import Document, DocumentStatus
from learning_assistant.rag.pipeline import EmbeddingPipeline
from learning_assistant.services.course_access import require_access, require_teacher
from learning_assistant.services.task_runner import BackgroundTaskRunner
from learning_assistant.services.text_extractor import SUPPORTED_EXTENSIONS, extract_text, file_extension

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MIN_CONTENT_LENGTH = 10


def _validate_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title or len(title) > MAX_TITLE_LENGTH:
        raise ValidationException(f"Title must be between 1 and {MAX_TITLE_LENGTH} characters")
    return title


def _validate_content(content: Optional[str]) -> str:
    if not content or len(content.strip()) < MIN_CONTENT_LENGTH:
        raise ValidationException(f"Content must be at least {MIN_CONTENT_LENGTH} characters")
    return content


class DocumentService:
    """
    Service for course material operations

    Every write that changes a document's text bumps its processing
    generation and hands the document to the embedding pipeline in the
    background; the request returns before processing starts.
    """

    def __init__(self, pipeline: EmbeddingPipeline, task_runner: BackgroundTaskRunner):
        self.pipeline = pipeline
        self.task_runner = task_runner

    def _submit(self, db: Session, doc: Document) -> Document:
        """Reset status, bump generation and queue the pipeline run"""
        doc.processing_generation = (doc.processing_generation or 0) + 1
        doc.status = DocumentStatus.UNPROCESSED.value
        doc.processing_error = None
        doc.word_count = len(doc.content.split())
        doc.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(doc)

        self.task_runner.submit(
            self.pipeline.process_document,
            doc.id,
            doc.processing_generation,
            name=f"process_document_{doc.id}"
        )
        logger.info(f"Queued document {doc.id} (generation {doc.processing_generation}) for processing")
        return doc

    def upload_text(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        title: str,
        content: str,
        topics: Optional[List[str]] = None
    ) -> Document:
        """
        Create a text document and queue it for processing

        Args:
            db: Database session
            user_id: Uploading user (must teach the course)
            course_id: Course ID
            title: Document title (1-200 characters)
            content: Document text (at least 10 characters)
            topics: Subject tags shown by the course topics listing

        Returns:
            Created document with status 'unprocessed'
        """
        title = _validate_title(title)
        content = _validate_content(content)
        require_teacher(db, course_id, user_id)

        doc = Document(
            course_id=course_id,
            uploaded_by=user_id,
            title=title,
            content=content,
            source_type="text",
            topics=[t.strip() for t in topics or [] if t and t.strip()]
        )
        db.add(doc)
        db.flush()
        logger.info(f"Created text document {doc.id} in course {course_id}")
        return self._submit(db, doc)

    def upload_file(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
        title: Optional[str] = None
    ) -> Document:
        """
        Create a document from an uploaded .txt/.pdf/.docx file

        Args:
            db: Database session
            user_id: Uploading user (must teach the course)
            course_id: Course ID
            filename: Original file name
            data: File contents
            content_type: MIME type reported by the client
            title: Optional title (default: file name without extension)

        Returns:
            Created document with status 'unprocessed'
        """
        extension = file_extension(filename)
        if extension not in SUPPORTED_EXTENSIONS:
            raise ValidationException(
                f"File type {extension or 'unknown'} not supported. Allowed: {', '.join(SUPPORTED_EXTENSIONS)}"
            )
        if len(data) > settings.MAX_UPLOAD_SIZE_BYTES:
            limit_mb = settings.MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)
            raise ValidationException(f"File size exceeds {limit_mb}MB limit")

        require_teacher(db, course_id, user_id)

        title = _validate_title(title or Path(filename).stem)
        text = extract_text(filename, data)
        if not text.strip():
            raise ValidationException("No text could be extracted from the file")

        doc = Document(
            course_id=course_id,
            uploaded_by=user_id,
            title=title,
            content=text,
            source_type="file",
            file_name=filename,
            file_type=content_type or extension.lstrip('.'),
            file_size=len(data)
        )
        db.add(doc)
        db.flush()
        logger.info(f"Created file document {doc.id} from {filename} ({len(text)} characters)")
        return self._submit(db, doc)

    def _load_active(self, db: Session, document_id: int) -> Document:
        doc = db.query(Document).filter(
            Document.id == document_id,
            Document.is_active.is_(True)
        ).first()
        if not doc:
            raise DocumentNotFoundException(f"Document {document_id} not found")
        return doc

    def replace_content(self, db: Session, user_id: int, document_id: int, content: str) -> Document:
        """Replace a document's text and reprocess it"""
        content = _validate_content(content)
        doc = self._load_active(db, document_id)
        require_teacher(db, doc.course_id, user_id)
        doc.content = content
        return self._submit(db, doc)

    def reprocess(self, db: Session, user_id: int, document_id: int) -> Document:
        """Run the pipeline again over the current text"""
        doc = self._load_active(db, document_id)
        require_teacher(db, doc.course_id, user_id)
        return self._submit(db, doc)

    def list_course_documents(self, db: Session, user_id: int, course_id: int) -> List[Document]:
        """Active documents of a course, newest first"""
        require_access(db, course_id, user_id)
        return db.query(Document).filter(
            Document.course_id == course_id,
            Document.is_active.is_(True)
        ).order_by(Document.created_at.desc(), Document.id.desc()).all()

    def get_document(self, db: Session, user_id: int, document_id: int) -> Document:
        """Single active document visible to a course member"""
        doc = self._load_active(db, document_id)
        require_access(db, doc.course_id, user_id)
        return doc
