"""Chunking and embedding pipeline for uploaded documents"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple
import asyncio
import gc
import logging

from sqlalchemy.orm import Session

from learning_assistant.database.session import SessionLocal
from learning_assistant.exceptions import ConfigurationError, DocumentProcessingError
from learning_assistant.models.document import Document, DocumentStatus
from learning_assistant.models.document_chunk import DocumentChunk
from learning_assistant.rag.chunking import chunk_text
from learning_assistant.rag.config import RAGConfig, rag_config
from learning_assistant.rag.error_classifier import is_quota_error
from learning_assistant.rag.orchestrator import ProviderOrchestrator
from learning_assistant.rag.providers.base import HybridSignal
from learning_assistant.rag.tokens import count_tokens

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 1000


@dataclass
class ChunkResult:
    """Outcome of embedding one chunk"""
    index: int
    text: str
    vector: Optional[List[float]] = None
    error: Optional[str] = None
    model_name: Optional[str] = None

    @property
    def embedded(self) -> bool:
        return self.vector is not None


def resolve_status(results: List[ChunkResult]) -> Tuple[DocumentStatus, Optional[str]]:
    """
    Terminal document status for a set of chunk results

    Returns:
        (status, error summary or None)
    """
    if not results:
        return DocumentStatus.FAILED, "Document has no readable text"

    failed = [r for r in results if not r.embedded]
    if not failed:
        return DocumentStatus.PROCESSED, None

    first_error = failed[0].error or "unknown error"
    if len(failed) < len(results):
        return (
            DocumentStatus.PROCESSED,
            f"{len(failed)} of {len(results)} chunks failed to embed: {first_error}"
        )
    return DocumentStatus.PARTIALLY_PROCESSED, f"No chunks embedded: {first_error}"


class EmbeddingPipeline:
    """Splits document text into chunks and embeds them in batches"""

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        config: RAGConfig = rag_config,
        session_factory: Callable[[], Session] = SessionLocal
    ):
        self.orchestrator = orchestrator
        self.config = config
        self.session_factory = session_factory

    def chunk(self, text: str) -> List[str]:
        """Split (truncated) text into bounded overlapping chunks"""
        return chunk_text(
            text,
            chunk_size=self.config.chunk_size,
            overlap=self.config.chunk_overlap,
            max_chunks=self.config.max_chunks,
            max_length=self.config.max_content_length
        )

    async def embed_all(self, chunks: List[str]) -> List[ChunkResult]:
        """
        Embed chunks in fixed-size batches

        Chunks are embedded one at a time. After the first quota error (or
        when no embedding provider is usable) every remaining chunk is
        recorded as skipped without calling a provider. Between batches the
        pipeline yields to the event loop and collects garbage.

        Args:
            chunks: Chunk texts in order

        Returns:
            One ChunkResult per chunk, same order
        """
        results: List[ChunkResult] = []
        stop_reason: Optional[str] = None
        batch_size = max(1, self.config.embed_batch_size)

        for batch_start in range(0, len(chunks), batch_size):
            batch = chunks[batch_start:batch_start + batch_size]

            for offset, text in enumerate(batch):
                index = batch_start + offset
                if stop_reason:
                    results.append(ChunkResult(index=index, text=text, error=f"Skipped: {stop_reason}"))
                    continue

                try:
                    response = await self.orchestrator.embed(text)
                except ConfigurationError as e:
                    stop_reason = str(e)
                    results.append(ChunkResult(index=index, text=text, error=str(e)))
                    continue
                except Exception as e:
                    if is_quota_error(e):
                        stop_reason = "embedding provider quota exhausted"
                        logger.warning(f"Quota exhausted at chunk {index}, skipping remaining chunks")
                    else:
                        logger.error(f"Failed to generate embedding for chunk {index}: {e}")
                    results.append(ChunkResult(index=index, text=text, error=str(e)[:MAX_ERROR_LENGTH]))
                    continue

                if isinstance(response, HybridSignal):
                    stop_reason = f"no embedding provider available ({response.reason})"
                    results.append(ChunkResult(index=index, text=text, error=stop_reason))
                    continue

                results.append(
                    ChunkResult(
                        index=index,
                        text=text,
                        vector=response.vector,
                        model_name=response.model_name
                    )
                )

            done = batch_start + len(batch)
            if done < len(chunks) and not stop_reason:
                logger.info(f"Embedded batch {batch_start // batch_size + 1}: {done}/{len(chunks)} chunks")
                gc.collect()
                await asyncio.sleep(self.config.batch_pause_seconds)

        return results

    async def process_document(self, document_id: int, generation: Optional[int] = None) -> Optional[DocumentStatus]:
        """
        Chunk, embed and persist one document

        Runs detached from the upload request. Every write is conditional
        on the document still carrying ``generation``; a run that has been
        superseded by a newer upload discards its results.

        Args:
            document_id: Document ID to process
            generation: Processing generation captured at submission

        Returns:
            Terminal status written, or None if the run was discarded
        """
        db = self.session_factory()

        try:
            doc = db.query(Document).filter(
                Document.id == document_id,
                Document.is_active.is_(True)
            ).first()

            if not doc:
                logger.warning(f"Document {document_id} not found, skipping processing")
                return None

            if generation is None:
                generation = doc.processing_generation
            content = doc.content or ""
            title = doc.title

            if not self._claim(db, document_id, generation, {"status": DocumentStatus.PROCESSING.value}):
                logger.info(f"Document {document_id} generation {generation} superseded before start")
                return None

            logger.info(f"Processing document {document_id}: {title}")

            try:
                chunks = self.chunk(content)
                if not chunks:
                    raise DocumentProcessingError("Document has no readable text")

                results = await self.embed_all(chunks)
                status, error_summary = resolve_status(results)
            except Exception as e:
                logger.error(f"Error processing document {document_id}: {e}", exc_info=True)
                db.rollback()
                if not self._write_failure(db, document_id, generation, str(e)):
                    logger.info(f"Document {document_id} generation {generation} superseded, discarding failure")
                    return None
                return DocumentStatus.FAILED

            if not self._write_results(db, document_id, generation, results, status, error_summary):
                logger.info(f"Document {document_id} generation {generation} superseded, discarding results")
                return None

            embedded = sum(1 for r in results if r.embedded)
            logger.info(
                f"Processed document {document_id}: {embedded}/{len(results)} chunks embedded, "
                f"status={status.value}"
            )
            return status

        finally:
            db.close()

    def _claim(self, db: Session, document_id: int, generation: int, values: dict) -> bool:
        """Conditionally update the document row and commit"""
        updated = db.query(Document).filter(
            Document.id == document_id,
            Document.processing_generation == generation,
            Document.is_active.is_(True)
        ).update(values, synchronize_session=False)
        if not updated:
            db.rollback()
            return False
        db.commit()
        return True

    def _write_results(
        self,
        db: Session,
        document_id: int,
        generation: int,
        results: List[ChunkResult],
        status: DocumentStatus,
        error_summary: Optional[str]
    ) -> bool:
        """Replace the chunk list and set the terminal status in one transaction"""
        updated = db.query(Document).filter(
            Document.id == document_id,
            Document.processing_generation == generation,
            Document.is_active.is_(True)
        ).update({
            "status": status.value,
            "processing_error": error_summary[:MAX_ERROR_LENGTH] if error_summary else None,
            "chunks_count": len(results),
            "processed_at": datetime.utcnow(),
        }, synchronize_session=False)

        if not updated:
            db.rollback()
            return False

        db.query(DocumentChunk).filter(
            DocumentChunk.document_id == document_id
        ).delete(synchronize_session=False)

        db.add_all([
            DocumentChunk(
                document_id=document_id,
                chunk_index=r.index,
                chunk_text=r.text,
                token_count=count_tokens(r.text),
                vector=r.vector,
                embedding_model=r.model_name,
                error=r.error
            )
            for r in results
        ])
        db.commit()
        return True

    def _write_failure(self, db: Session, document_id: int, generation: int, error: str) -> bool:
        """Mark the document failed and drop its chunks in one transaction"""
        updated = db.query(Document).filter(
            Document.id == document_id,
            Document.processing_generation == generation,
            Document.is_active.is_(True)
        ).update({
            "status": DocumentStatus.FAILED.value,
            "processing_error": error[:MAX_ERROR_LENGTH],
            "chunks_count": 0,
            "processed_at": datetime.utcnow(),
        }, synchronize_session=False)

        if not updated:
            db.rollback()
            return False

        db.query(DocumentChunk).filter(
            DocumentChunk.document_id == document_id
        ).delete(synchronize_session=False)
        db.commit()
        return True
