"""Course and enrollment models (read-only backing for course access checks)"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from learning_assistant.database.base import Base


class Course(Base):
    """Course owned by a teacher"""

    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    teacher_id = Column(Integer, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    enrollments = relationship("CourseEnrollment", back_populates="course", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="course")

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"


class CourseEnrollment(Base):
    """Student membership of a course"""

    __tablename__ = "course_enrollments"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    enrolled_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    course = relationship("Course", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint('course_id', 'user_id', name='uq_course_enrollment'),
    )

    def __repr__(self):
        return f"<CourseEnrollment(course_id={self.course_id}, user_id={self.user_id})>"
