"""Student identity resolution (create-if-absent)."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from adaptive_practice.core.app_exceptions import IdentityResolutionError, PracticeInputError
from adaptive_practice.models.student import Student

logger = logging.getLogger(__name__)


def normalize_external_id(external_id) -> str:
    """Validate and trim an external student identifier."""
    if external_id is None or not str(external_id).strip():
        raise PracticeInputError("student_id is required", field="student_id")
    return str(external_id).strip()


def resolve_student(db: Session, external_id: str, grade: Optional[int] = None) -> Student:
    """
    Resolve an external identifier to a Student row, creating it if absent.

    Idempotent: concurrent creators converge on the same row through the unique
    constraint on ``external_id``.

    Raises:
        IdentityResolutionError: the row could neither be found nor created
    """
    external_id = normalize_external_id(external_id)
    try:
        student = db.execute(
            select(Student).where(Student.external_id == external_id)
        ).scalar_one_or_none()
        if student is not None:
            if grade and student.grade != grade:
                student.grade = grade
                db.flush()
            return student

        try:
            with db.begin_nested():
                student = Student(external_id=external_id, grade=grade)
                db.add(student)
        except IntegrityError:
            # Lost a create race; the other writer's row is visible now
            student = db.execute(
                select(Student).where(Student.external_id == external_id)
            ).scalar_one()
        else:
            logger.info(
                "student_created",
                extra={"event": "student_created", "student_id": student.id},
            )
        return student
    except SQLAlchemyError as e:
        logger.error(
            "identity_resolution_failed",
            extra={"event": "identity_resolution_failed", "error": str(e)},
        )
        raise IdentityResolutionError(f"Could not resolve student {external_id!r}") from e


def find_student(db: Session, external_id: str) -> Optional[Student]:
    """Look up a student without creating one."""
    external_id = normalize_external_id(external_id)
    return db.execute(
        select(Student).where(Student.external_id == external_id)
    ).scalar_one_or_none()
