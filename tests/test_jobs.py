"""Tests for maintenance jobs and their CLI."""

import json

from click.testing import CliRunner

from adaptive_practice.jobs import run as run_module
from adaptive_practice.jobs.reclassify import recompute_question_stats, reclassify_curated_questions
from adaptive_practice.models.exposure import ExposureRecord
from adaptive_practice.models.student import Student


def test_reclassify_updates_curated_labels(db, add_curated):
    curated = add_curated(
        "חשבו את הנגזרת של פונקציה",
        topic="כללי",
        subtopic=None,
        grade_level=8,
        difficulty="easy",
    )

    result = reclassify_curated_questions(db)

    assert result.processed == 1
    assert result.updated == 1
    assert result.details["changed_fields"]["grade"] == 1
    db.refresh(curated)
    assert curated.grade_level == 12
    assert curated.topic == "חשבון דיפרנציאלי"
    assert curated.difficulty == "medium"


def test_reclassify_dry_run_writes_nothing(db, add_curated):
    curated = add_curated("חשבו את הנגזרת של פונקציה", topic="כללי", grade_level=8)

    result = reclassify_curated_questions(db, dry_run=True)

    assert result.updated == 0
    assert result.details["dry_run"] is True
    assert result.details["changed_fields"]["topic"] == 1
    db.refresh(curated)
    assert curated.grade_level == 8
    assert curated.topic == "כללי"


def test_recompute_stats_job(db, add_question):
    question = add_question("פתרו 4x = 16")
    student = Student(external_id="job-1")
    db.add(student)
    db.flush()
    db.add(ExposureRecord(student_id=student.id, question_id=question.id, is_correct=False))
    db.commit()

    result = recompute_question_stats(db)

    assert result.updated == 1
    db.refresh(question)
    assert question.success_rate == 0.0


def test_cli_runs_job(db, add_curated, monkeypatch):
    add_curated("פתרו את המשוואה 2x = 6")
    monkeypatch.setattr(run_module, "SessionLocal", lambda: db)
    monkeypatch.setattr(run_module, "setup_logging", lambda: None)

    result = CliRunner().invoke(run_module.run, ["reclassify", "--dry-run"])

    assert result.exit_code == 0
    payload = json.loads(result.output.split("Job completed: ", 1)[1])
    assert payload["job"] == "reclassify"
    assert payload["processed"] == 1


def test_cli_rejects_unknown_job():
    result = CliRunner().invoke(run_module.run, ["rebuild-everything"])
    assert result.exit_code != 0


def test_cli_reports_failure(db, monkeypatch):
    def broken(session):
        raise RuntimeError("boom")

    monkeypatch.setattr(run_module, "SessionLocal", lambda: db)
    monkeypatch.setattr(run_module, "setup_logging", lambda: None)
    monkeypatch.setattr(run_module, "recompute_question_stats", broken)

    result = CliRunner().invoke(run_module.run, ["recompute-stats"])
    assert result.exit_code == 1
    assert "Job failed: boom" in result.output
