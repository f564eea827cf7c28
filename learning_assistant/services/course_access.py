"""Course lookup and membership checks"""

from typing import List
from sqlalchemy.orm import Session, selectinload

from learning_assistant.exceptions import CourseAccessDeniedException, CourseNotFoundException
from learning_assistant.models.course import Course, CourseEnrollment
from learning_assistant.models.document import Document, RETRIEVABLE_STATUSES


def get_course(db: Session, course_id: int) -> Course:
    """
    Load an active course

    Raises:
        CourseNotFoundException: Course missing or inactive
    """
    course = db.query(Course).filter(
        Course.id == course_id,
        Course.is_active.is_(True)
    ).first()
    if not course:
        raise CourseNotFoundException(f"Course {course_id} not found")
    return course


def is_teacher(course: Course, user_id: int) -> bool:
    return course.teacher_id == user_id


def has_access(db: Session, course: Course, user_id: int) -> bool:
    """Teacher of the course or enrolled student"""
    if is_teacher(course, user_id):
        return True
    enrollment = db.query(CourseEnrollment.id).filter(
        CourseEnrollment.course_id == course.id,
        CourseEnrollment.user_id == user_id
    ).first()
    return enrollment is not None


def require_access(db: Session, course_id: int, user_id: int) -> Course:
    """Course the user may read, or raise 404/403"""
    course = get_course(db, course_id)
    if not has_access(db, course, user_id):
        raise CourseAccessDeniedException("You do not have access to this course")
    return course


def require_teacher(db: Session, course_id: int, user_id: int) -> Course:
    """Course the user teaches, or raise 404/403"""
    course = get_course(db, course_id)
    if not is_teacher(course, user_id):
        raise CourseAccessDeniedException("Only the course teacher can manage course materials")
    return course


def documents_in_scope(db: Session, course_id: int, load_chunks: bool = True) -> List[Document]:
    """Active, retrievable documents of a course, with their chunks loaded unless told otherwise"""
    query = db.query(Document)
    if load_chunks:
        query = query.options(selectinload(Document.chunks))
    return query.filter(
        Document.course_id == course_id,
        Document.is_active.is_(True),
        Document.status.in_(RETRIEVABLE_STATUSES)
    ).order_by(Document.id).all()
