"""Tests for student identity resolution."""

import pytest
from sqlalchemy import select

from adaptive_practice.core.app_exceptions import PracticeInputError
from adaptive_practice.learning_engine.identity import find_student, resolve_student
from adaptive_practice.models.student import Student


def test_resolve_creates_once(db):
    first = resolve_student(db, " student-42 ")
    db.commit()
    second = resolve_student(db, "student-42")

    assert first.id == second.id
    assert first.external_id == "student-42"
    assert len(db.execute(select(Student)).scalars().all()) == 1


def test_resolve_updates_known_grade(db):
    resolve_student(db, "student-43", grade=9)
    student = resolve_student(db, "student-43", grade=10)
    db.commit()

    assert student.grade == 10
    assert resolve_student(db, "student-43").grade == 10


def test_find_student_does_not_create(db):
    assert find_student(db, "nobody") is None
    assert db.execute(select(Student)).scalars().all() == []


@pytest.mark.parametrize("external_id", [None, "", "   "])
def test_blank_identifier_rejected(db, external_id):
    with pytest.raises(PracticeInputError):
        resolve_student(db, external_id)
