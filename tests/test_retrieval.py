"""
Tests for the question store and the retrieval orchestrator.

Tests:
- Tier order: exact cache, curated bank, topic cache, generation, template
- Grade-leak guard in every tier
- No repeats within a student's exposure history or recent window
- Content-hash deduplication and statistics
- Answer submission
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from adaptive_practice.core.app_exceptions import GenerationTimeout, PracticeInputError
from adaptive_practice.learning_engine.constants import MatchType
from adaptive_practice.learning_engine.identity import find_student
from adaptive_practice.learning_engine.retrieval import strategies as strategies_module
from adaptive_practice.learning_engine.retrieval.answers import answers_match, normalize_answer
from adaptive_practice.learning_engine.retrieval.service import (
    REASON_NO_QUESTION,
    REASON_PERSISTENCE,
    REASON_QUESTION_NOT_FOUND,
    get_next_question,
    submit_answer,
)
from adaptive_practice.learning_engine.retrieval.store import (
    compute_quality_score,
    find_curated_candidates,
    get_store_stats,
    persist_question,
    quality_tier,
    refresh_question_stats,
)
from adaptive_practice.learning_engine.retrieval.strategies import CacheStrategy
from adaptive_practice.learning_engine.retrieval.templates import build_template_question
from adaptive_practice.learning_engine.retrieval.topics import (
    is_grade_compatible,
    resolve_topic_labels,
)
from adaptive_practice.models.exposure import ExposureRecord
from adaptive_practice.models.question_store import QuestionRecord
from adaptive_practice.models.student import Student

GENERATED = {
    "text": "דני קנה 4 מחברות ב-12 שקלים כל אחת. כמה שילם?",
    "answer": 48,
    "hints": ["כפלו את מספר המחברות במחיר"],
    "explanation": "4 כפול 12",
    "solution_steps": ["4 × 12 = 48"],
}

# === Store helpers ===


def test_quality_score_formula():
    assert compute_quality_score(0, 0.0) == 50.0
    assert compute_quality_score(20, 100.0) == 95.0
    assert compute_quality_score(5, 0.0) == 30.0
    assert compute_quality_score(10, 0.0) == 35.0
    assert compute_quality_score(50, 100.0) == 95.0


def test_quality_tiers():
    assert quality_tier(80.0) == 3
    assert quality_tier(60.0) == 2
    assert quality_tier(59.9) == 1


def test_persist_question_dedups_by_normalized_text(db):
    first, created = persist_question(
        db, question_text="פתרו: x + 5 = 12", correct_answer="7", difficulty="easy", source="curated"
    )
    second, created_again = persist_question(
        db, question_text="  פתרו:   x + 5 = 12 ", correct_answer="7", difficulty="easy", source="ai_generated"
    )
    db.commit()

    assert created
    assert not created_again
    assert first.id == second.id
    assert first.quality_score == 75.0
    assert db.execute(select(QuestionRecord)).scalars().all() == [first]


def test_refresh_question_stats_from_exposure_log(db, add_question):
    question = add_question("פתרו 2x = 10")
    student = Student(external_id="stats-1")
    db.add(student)
    db.flush()
    for is_correct, seconds in ((True, 10.0), (True, 20.0), (False, 30.0), (True, 40.0)):
        db.add(
            ExposureRecord(
                student_id=student.id,
                question_id=question.id,
                is_correct=is_correct,
                time_spent_seconds=seconds,
            )
        )
    # Shown but unanswered rows do not count
    db.add(ExposureRecord(student_id=student.id, question_id=question.id, is_correct=None))
    db.commit()

    assert refresh_question_stats(db, question.id) == 1
    db.commit()
    db.refresh(question)

    assert question.success_rate == pytest.approx(75.0)
    assert question.average_time_seconds == pytest.approx(25.0)
    assert question.quality_score == pytest.approx(50.0)


def test_store_stats_counts_by_source_and_difficulty(db, add_question, add_curated):
    add_question("שאלה ראשונה 1", source="curated", difficulty="easy")
    add_question("שאלה שנייה 2", source="ai_generated", difficulty="hard")
    add_curated("שאלה מהמאגר 3")

    stats = get_store_stats(db)
    assert stats["total_questions"] == 2
    assert stats["by_source"] == {"curated": 1, "ai_generated": 1, "template": 0}
    assert stats["by_difficulty"] == {"easy": 1, "medium": 0, "hard": 1}
    assert stats["curated"]["total_questions"] == 1


def test_curated_grade_window(db, add_curated):
    add_curated("שאלה לכיתה ז 1", grade_level=7)
    add_curated("שאלה לכיתה ח 2", grade_level=8)
    add_curated("שאלה לכיתה ט 3", grade_level=9)

    found = find_curated_candidates(db, labels=["אלגברה"], difficulty="medium", grade=8)
    assert sorted(c.grade_level for c in found) == [7, 8]


# === Topics and templates ===


def test_resolve_topic_labels_for_slug_and_hebrew():
    assert resolve_topic_labels("linear-equations")[0] == "אלגברה"
    assert "אלגברה" in resolve_topic_labels("משוואות ריבועיות")
    assert resolve_topic_labels("equations") != []
    assert resolve_topic_labels("unknown-topic-slug") == []


def test_grade_compatibility():
    assert not is_grade_compatible("חשבו את הנגזרת של f(x)", 8)
    assert is_grade_compatible("חשבו את הנגזרת של f(x)", 12)
    assert not is_grade_compatible("שרטטו את הפרבולה", 9)
    assert is_grade_compatible("שרטטו את הפרבולה", 10)
    assert is_grade_compatible("כל טקסט", None)


def test_template_questions_are_deterministic():
    first = build_template_question("linear-equations", "medium", "s1:linear-equations:medium:0")
    again = build_template_question("linear-equations", "medium", "s1:linear-equations:medium:0")

    assert first == again
    assert first.correct_answer.startswith("x = ")
    assert build_template_question("functions", "medium", "seed") is None


def test_answers_match():
    assert answers_match("x = 5", "5")
    assert answers_match("5.0", "x=5")
    assert answers_match(" 0.25 ", "0.25")
    assert answers_match("25%", "25")
    assert not answers_match("6", "5")
    assert not answers_match("", "5")
    assert answers_match("Yes", "yes")
    assert normalize_answer("  y :  12 ") == "12"


# === Orchestrator tiers ===


def test_exact_cache_hit_records_exposure(db, add_question, recent_window):
    question = add_question(
        "פתרו את המשוואה x + 3 = 10", subtopic_id="one-step", difficulty="medium", grade=8
    )

    result = get_next_question(
        db, "s1", "linear-equations", subtopic="one-step", difficulty="medium", grade=8
    )

    assert result.ok
    assert result.match_type == MatchType.EXACT.value
    assert result.question.question_id == question.id

    db.refresh(question)
    assert question.usage_count == 1

    student = find_student(db, "s1")
    exposure = db.execute(select(ExposureRecord)).scalar_one()
    assert exposure.student_id == student.id
    assert exposure.question_id == question.id
    assert exposure.is_correct is None
    assert [e.question for e in recent_window.recent("s1", "linear-equations")] == [
        question.question_text
    ]


def test_curated_bank_hit_is_copied_into_store(db, add_curated):
    curated = add_curated("פתרו את המשוואה 2x + 1 = 15", correct_answer="7", grade_level=8)

    result = get_next_question(db, "s2", "linear-equations", difficulty="medium", grade=8)

    assert result.ok
    assert result.match_type == MatchType.CURATED.value
    record = db.get(QuestionRecord, result.question.question_id)
    assert record.origin_ref == f"curated:{curated.id}"
    assert record.source == "curated"
    assert record.topic_id == "linear-equations"


def test_topic_tier_widens_subtopic_miss(db, add_question):
    add_question("פתרו את המשוואה 3x - 4 = 11", subtopic_id="two-step", difficulty="medium", grade=8)

    result = get_next_question(
        db, "s3", "linear-equations", subtopic="one-step", difficulty="medium", grade=8
    )

    assert result.ok
    assert result.match_type == MatchType.TOPIC.value


def test_tier_failure_falls_through_to_next_tier(db, add_question):
    question = add_question("פתרו את המשוואה x - 2 = 9", difficulty="medium", grade=8)

    class BrokenStrategy:
        match_type = MatchType.EXACT

        def try_retrieve(self, db, request):
            raise OperationalError("SELECT 1", {}, Exception("connection lost"))

    result = get_next_question(
        db,
        "s4",
        "linear-equations",
        difficulty="medium",
        grade=8,
        strategies=[BrokenStrategy(), CacheStrategy(match_subtopic=True)],
    )

    assert result.ok
    assert result.question.question_id == question.id


def test_no_repeats_then_template_fallback(db, add_question):
    first_q = add_question("פתרו את המשוואה x + 8 = 20", difficulty="medium", grade=8)
    second_q = add_question("כמה שווה x אם 5x = 45", difficulty="medium", grade=8)

    first = get_next_question(db, "s5", "linear-equations", difficulty="medium", grade=8)
    second = get_next_question(db, "s5", "linear-equations", difficulty="medium", grade=8)
    third = get_next_question(db, "s5", "linear-equations", difficulty="medium", grade=8)

    assert {first.question.question_id, second.question.question_id} == {first_q.id, second_q.id}
    assert third.ok
    assert third.match_type == MatchType.TEMPLATE.value
    assert third.question.source == "template"
    assert third.question.question_id not in {first_q.id, second_q.id}


def test_caller_exclude_ids_are_honored(db, add_question):
    first_q = add_question("פתרו את המשוואה x + 1 = 4", difficulty="easy", grade=8)
    second_q = add_question("פתרו את המשוואה x + 6 = 13", difficulty="easy", grade=8)

    result = get_next_question(
        db, "s6", "linear-equations", difficulty="easy", grade=8, exclude_ids=[first_q.id, "abc"]
    )
    assert result.question.question_id == second_q.id


def test_similar_to_recent_window_is_skipped(db, add_question, recent_window):
    similar = add_question("במשולש אורך הבסיס 10 והגובה 6. מהו שטח המשולש?", topic_id="triangle-area")
    different = add_question("במעגל הרדיוס 7. מהו היקף המעגל?", topic_id="triangle-area")
    recent_window.add("s7", "triangle-area", "במשולש אורך הבסיס 10 והגובה 6. חשבו את שטח המשולש")

    result = get_next_question(db, "s7", "triangle-area", difficulty="medium", grade=8)

    assert result.question.question_id == different.id
    assert result.question.question_id != similar.id


def test_default_difficulty_comes_from_recommendation(db, add_question):
    add_question("פתרו את המשוואה x + 2 = 5", difficulty="medium", grade=8)

    result = get_next_question(db, "new-student", "linear-equations", grade=8)

    assert result.difficulty == "medium"
    assert result.ok


# === Grade-leak guard ===


def test_grade_leak_never_served_even_when_mislabeled(db, add_question, add_curated, make_stub_generator):
    """Higher-grade content is excluded at every tier, including generation."""
    add_question("חשבו את הנגזרת של f(x) = x² בנקודה 3", topic_id="functions", grade=8)
    add_question("מצאו את הגבול של הפונקציה כאשר x שואף ל-2", topic_id="functions", grade=None)
    add_curated("חשבו את הנגזרת של הפונקציה f(x) = 3x", topic="פונקציות", grade_level=8)
    generator = make_stub_generator(
        [{"text": "חשבו את האינטגרל של 2x בין 0 ל-3", "answer": "9"}]
    )

    result = get_next_question(
        db, "s8", "functions", difficulty="medium", grade=8, generator=generator
    )

    assert not result.ok
    assert result.reason == REASON_NO_QUESTION
    assert len(generator.requests) == 1


def test_grade_leak_allowed_for_senior_grade(db, add_question):
    question = add_question("חשבו את הנגזרת של f(x) = x² בנקודה 3", topic_id="functions", grade=12)

    result = get_next_question(db, "s9", "functions", difficulty="medium", grade=12)
    assert result.question.question_id == question.id


# === Generation and fallback ===


def test_generation_used_after_tiers_miss(db, make_stub_generator):
    generator = make_stub_generator([GENERATED])

    result = get_next_question(
        db, "s10", "proportions-ratios", difficulty="hard", grade=9, generator=generator
    )

    assert result.ok
    assert result.match_type == MatchType.GENERATED.value
    assert result.question.correct_answer == "48"
    record = db.get(QuestionRecord, result.question.question_id)
    assert record.source == "ai_generated"
    assert record.difficulty == "hard"
    assert record.topic_id == "proportions-ratios"
    assert generator.requests[0].avoid == ""
    assert generator.requests[0].grade == 9


def test_generation_receives_avoid_block_from_history(db, add_question, make_stub_generator):
    add_question("כמה זה 20% מתוך 150?", topic_id="proportions-ratios", difficulty="hard", grade=9)
    get_next_question(db, "s11", "proportions-ratios", difficulty="hard", grade=9)

    generator = make_stub_generator([GENERATED])
    get_next_question(db, "s11", "proportions-ratios", difficulty="hard", grade=9, generator=generator)

    avoid = generator.requests[0].avoid
    assert "AVOID REPETITION" in avoid
    assert "כמה זה 20% מתוך 150?" in avoid
    assert "Numbers used: 20, 150" in avoid


def test_generation_failure_falls_back_to_template(db, make_stub_generator):
    generator = make_stub_generator(error=GenerationTimeout("slow"))

    result = get_next_question(
        db, "s12", "linear-equations", difficulty="easy", grade=8, generator=generator
    )

    assert result.ok
    assert result.match_type == MatchType.TEMPLATE.value
    record = db.get(QuestionRecord, result.question.question_id)
    assert record.source == "template"
    assert record.quality_score == 50.0
    assert record.origin_ref == "template:linear_equation"


def test_generated_duplicate_of_seen_question_falls_back_to_template(db, make_stub_generator):
    generator = make_stub_generator([GENERATED, GENERATED])

    first = get_next_question(
        db, "s19", "proportions-ratios", difficulty="easy", grade=8, generator=generator
    )
    second = get_next_question(
        db, "s19", "proportions-ratios", difficulty="easy", grade=8, generator=generator
    )

    assert first.match_type == MatchType.GENERATED.value
    assert len(generator.requests) == 2
    assert second.ok
    assert second.match_type == MatchType.TEMPLATE.value
    assert second.question.question_id != first.question.question_id


def test_generated_duplicate_without_template_is_no_question(db, make_stub_generator):
    generator = make_stub_generator([GENERATED, GENERATED])

    first = get_next_question(db, "s20", "functions", difficulty="easy", grade=8, generator=generator)
    second = get_next_question(db, "s20", "functions", difficulty="easy", grade=8, generator=generator)

    assert first.match_type == MatchType.GENERATED.value
    assert not second.ok
    assert second.reason == REASON_NO_QUESTION


def test_curated_persist_failure_serves_without_store_id(db, add_curated, monkeypatch):
    add_curated("פתרו את המשוואה 4x - 3 = 25", grade_level=8)

    def half_written_persist(db, **kwargs):
        db.add(Student(external_id="half-written"))
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(strategies_module, "persist_question", half_written_persist)

    result = get_next_question(db, "s18", "linear-equations", difficulty="medium", grade=8)

    assert result.ok
    assert result.match_type == MatchType.CURATED.value
    assert result.question.question_id is None
    assert find_student(db, "half-written") is None
    exposure = db.execute(select(ExposureRecord)).scalar_one()
    assert exposure.question_id is None


def test_no_question_available_is_a_tagged_result(db):
    result = get_next_question(db, "s13", "functions", difficulty="easy", grade=8)

    assert not result.ok
    assert result.reason == REASON_NO_QUESTION
    assert result.question is None


# === Input validation ===


@pytest.mark.parametrize(
    "kwargs",
    [
        {"student_id": "", "topic": "algebra"},
        {"student_id": "s1", "topic": " "},
        {"student_id": "s1", "topic": "algebra", "difficulty": "impossible"},
        {"student_id": "s1", "topic": "algebra", "grade": 4},
        {"student_id": "s1", "topic": "algebra", "grade": "eight"},
    ],
)
def test_get_next_question_rejects_invalid_input(db, kwargs):
    with pytest.raises(PracticeInputError):
        get_next_question(db, **kwargs)


# === submitAnswer ===


def test_submit_correct_answer_updates_stats_and_difficulty(db, add_question):
    question = add_question("פתרו את המשוואה x + 3 = 8", correct_answer="x = 5", difficulty="medium")
    get_next_question(db, "s14", "linear-equations", difficulty="medium", grade=8)

    result = submit_answer(db, "s14", question.id, "5", time_spent=12.5, hints_used=1)

    assert result.ok
    assert result.is_correct
    assert result.correct_answer == "x = 5"
    assert result.adjustment["should_adjust"] is False
    assert result.adjustment["total_count"] == 1

    db.refresh(question)
    assert question.success_rate == 100.0
    assert question.average_time_seconds == 12.5

    answered = db.execute(
        select(ExposureRecord).where(ExposureRecord.is_correct.is_not(None))
    ).scalar_one()
    assert answered.hints_used == 1
    assert answered.topic_key == "linear-equations"


def test_submit_wrong_answer(db, add_question):
    question = add_question("פתרו את המשוואה x + 4 = 9", correct_answer="5")

    result = submit_answer(db, "s15", question.id, "6")

    assert result.ok
    assert result.is_correct is False
    assert result.correct_answer == "5"


def test_submit_unknown_question(db):
    result = submit_answer(db, "s16", 9999, "5")
    assert not result.ok
    assert result.reason == REASON_QUESTION_NOT_FOUND


@pytest.mark.parametrize(
    "question_id,time_spent,hints_used",
    [("abc", 0, 0), (1, -1, 0), (1, 0, -2)],
)
def test_submit_rejects_invalid_input(db, question_id, time_spent, hints_used):
    with pytest.raises(PracticeInputError):
        submit_answer(db, "s17", question_id, "5", time_spent=time_spent, hints_used=hints_used)


def test_submit_answer_lookup_failure_is_tagged(db, monkeypatch):
    def broken_get(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "get", broken_get)

    result = submit_answer(db, "s21", 1, "5")

    assert not result.ok
    assert result.reason == REASON_PERSISTENCE
    assert result.question_id == 1
