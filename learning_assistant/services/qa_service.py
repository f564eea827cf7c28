"""Question answering over course materials"""

from typing import Any, Dict
import logging
import time

from sqlalchemy.orm import Session

from learning_assistant.exceptions import ConfigurationError, ProviderError, ValidationException
from learning_assistant.rag.chain import AnswerComposer
from learning_assistant.rag.prompt_templates import ANSWER_FAILED_MESSAGE, SUGGESTED_QUESTIONS
from learning_assistant.rag.retriever import Retriever
from learning_assistant.services.course_access import documents_in_scope, require_access

logger = logging.getLogger(__name__)

MAX_QUESTION_LENGTH = 500


class QAService:
    """Retrieve-then-answer for one course"""

    def __init__(self, retriever: Retriever, composer: AnswerComposer):
        self.retriever = retriever
        self.composer = composer

    async def ask_question(self, db: Session, user_id: int, course_id: int, question: str) -> Dict[str, Any]:
        """
        Answer a student question from the course's processed documents

        Args:
            db: Database session
            user_id: Asking user (teacher or enrolled student)
            course_id: Course ID
            question: Question text (1-500 characters)

        Returns:
            Dict with answer, sources, confidence, question and mode

        Raises:
            ValidationException: Empty or overlong question
            CourseNotFoundException / CourseAccessDeniedException
            ProviderError: Every provider failed (reported as 503)
        """
        question = (question or "").strip()
        if not question or len(question) > MAX_QUESTION_LENGTH:
            raise ValidationException(f"Question must be between 1 and {MAX_QUESTION_LENGTH} characters")

        require_access(db, course_id, user_id)
        documents = documents_in_scope(db, course_id)

        start_time = time.time()
        try:
            retrieval = await self.retriever.retrieve(documents, question)
            answer = await self.composer.answer(question, retrieval)
        except (ProviderError, ConfigurationError) as e:
            logger.error(f"RAG query failed for course {course_id}: {e}")
            raise ProviderError(ANSWER_FAILED_MESSAGE, provider=getattr(e, "provider", None)) from e

        logger.info(
            f"Answered question in course {course_id} ({answer.mode}, confidence {answer.confidence}) "
            f"in {time.time() - start_time:.2f}s"
        )

        return {
            "answer": answer.text,
            "sources": answer.sources,
            "confidence": answer.confidence,
            "question": question,
            "mode": answer.mode
        }

    def course_topics(self, db: Session, user_id: int, course_id: int) -> Dict[str, Any]:
        """
        Topics of a course's processed documents, with starter questions

        Topics are deduplicated case-insensitively, keeping the first
        spelling and upload order.

        Raises:
            CourseNotFoundException / CourseAccessDeniedException
        """
        require_access(db, course_id, user_id)
        documents = documents_in_scope(db, course_id, load_chunks=False)

        topics = []
        seen = set()
        for doc in documents:
            for topic in doc.topics or []:
                topic = (topic or "").strip()
                if topic and topic.lower() not in seen:
                    seen.add(topic.lower())
                    topics.append(topic)

        return {
            "topics": topics,
            "suggested_questions": list(SUGGESTED_QUESTIONS),
            "documents_count": len(documents)
        }
