"""Question answering endpoint"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from learning_assistant.database.session import get_db
from learning_assistant.rag.chain import AnswerComposer
from learning_assistant.rag.factory import get_answer_composer, get_retriever
from learning_assistant.rag.retriever import Retriever
from learning_assistant.schemas.rag import AskRequest, AskResponse, TopicsResponse
from learning_assistant.security.auth import get_current_user_id
from learning_assistant.security.rate_limiter import enforce_rate_limit
from learning_assistant.services.qa_service import QAService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_qa_service(
    retriever: Retriever = Depends(get_retriever),
    composer: AnswerComposer = Depends(get_answer_composer)
) -> QAService:
    return QAService(retriever, composer)


@router.post(
    "/rag/ask/{course_id}",
    response_model=AskResponse,
    dependencies=[Depends(enforce_rate_limit)]
)
async def ask_question(
    course_id: int,
    request: AskRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    qa_service: QAService = Depends(get_qa_service)
):
    """
    Ask a question about a course's materials

    The answer is grounded in the course's processed documents. With no
    processed documents the response carries a fixed "not enough
    information" answer with confidence 0.
    """
    logger.info(f"User {user_id} asked a question in course {course_id}")
    result = await qa_service.ask_question(db, user_id, course_id, request.question)
    return AskResponse(**result)


@router.get("/rag/topics/{course_id}", response_model=TopicsResponse)
async def get_course_topics(
    course_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    qa_service: QAService = Depends(get_qa_service)
):
    """Topics covered by a course's processed documents and suggested questions"""
    return TopicsResponse(**qa_service.course_topics(db, user_id, course_id))
