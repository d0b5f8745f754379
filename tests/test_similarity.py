"""
Tests for the duplicate / similarity guard.

Tests:
- Fingerprint extraction and overlap thresholds
- Content hash normalization
- Recent-exposure window backends
- Historical tier queries and the avoid block
"""

from datetime import UTC, datetime, timedelta

from adaptive_practice.learning_engine.similarity.fingerprint import (
    Fingerprint,
    content_hash,
    extract_keywords,
    extract_numbers,
    fingerprint,
    is_similar,
    is_similar_fingerprint,
    overlap_ratio,
)
from adaptive_practice.learning_engine.similarity.history import (
    build_avoidance_prompt,
    get_historical_texts,
    get_recent_exposure_ids,
)
from adaptive_practice.learning_engine.similarity.window import (
    InMemoryRecentWindow,
    RecentEntry,
    RedisRecentWindow,
    build_recent_window,
)
from adaptive_practice.models.exposure import ExposureRecord
from adaptive_practice.models.student import Student

# === Fingerprints ===


def test_extract_keywords_keeps_hebrew_tokens_of_three_letters():
    assert extract_keywords("פתרו את המשוואה 3x + 5 = 20") == ["פתרו", "המשוואה"]


def test_extract_keywords_caps_at_eight():
    text = " ".join(["מילה"] * 3 + ["אחת", "שתיים", "שלוש", "ארבע", "חמש", "שש", "שבע", "שמונה"])
    assert len(extract_keywords(text)) == 8


def test_extract_numbers_includes_decimals():
    assert extract_numbers("מחיר 12.5 ועוד 3 ו-40") == ["12.5", "3", "40"]


def test_overlap_ratio_uses_larger_set():
    assert overlap_ratio({"1", "2"}, {"1", "2", "3", "4"}) == 0.5
    assert overlap_ratio(set(), set()) == 0.0


def test_similarity_requires_both_overlaps_above_half():
    a = Fingerprint(keywords=frozenset({"משולש", "שטח", "בסיס"}), numbers=frozenset({"4", "6"}))
    same_numbers_other_words = Fingerprint(
        keywords=frozenset({"מעגל", "רדיוס", "היקף"}), numbers=frozenset({"4", "6"})
    )
    same_words_other_numbers = Fingerprint(
        keywords=frozenset({"משולש", "שטח", "בסיס"}), numbers=frozenset({"9", "11"})
    )
    assert is_similar_fingerprint(a, a)
    assert not is_similar_fingerprint(a, same_numbers_other_words)
    assert not is_similar_fingerprint(a, same_words_other_numbers)


def test_exactly_half_overlap_is_not_similar():
    a = Fingerprint(keywords=frozenset({"אלף", "בית"}), numbers=frozenset({"1", "2"}))
    b = Fingerprint(keywords=frozenset({"אלף", "גימל"}), numbers=frozenset({"1", "3"}))
    assert not is_similar_fingerprint(a, b)


def test_is_similar_against_recent_window():
    shown = "במשולש אורך הבסיס 10 והגובה 6. מהו שטח המשולש?"
    recent = [fingerprint(shown)]

    assert is_similar("במשולש אורך הבסיס 10 והגובה 6. חשבו את שטח המשולש", recent)
    assert not is_similar("במשולש אורך הבסיס 14 והגובה 9. מהו שטח המשולש?", recent)
    assert not is_similar(shown, [])


def test_content_hash_ignores_case_whitespace_and_punctuation():
    assert content_hash("Solve:   x + 5 = 12?") == content_hash("solve x + 5 = 12")
    assert content_hash("פתרו: x + 5 = 12") != content_hash("פתרו: x + 6 = 12")


# === Recent-exposure window ===


def test_in_memory_window_caps_and_orders_entries():
    window = InMemoryRecentWindow(max_size=3)
    for i in range(5):
        window.add("s1", "algebra", f"שאלה מספר {i}")

    entries = window.recent("s1", "algebra")
    assert [e.question for e in entries] == ["שאלה מספר 2", "שאלה מספר 3", "שאלה מספר 4"]
    assert [e.question for e in window.recent("s1", "algebra", count=2)] == [
        "שאלה מספר 3",
        "שאלה מספר 4",
    ]
    assert window.recent("s1", "algebra", count=0) == []


def test_in_memory_window_keys_by_student_and_topic():
    window = InMemoryRecentWindow(max_size=5)
    window.add("s1", "algebra", "שאלה ראשונה 1")
    window.add("s2", "algebra", "שאלה שנייה 2")
    window.add("s1", "geometry", "שאלה שלישית 3")

    assert len(window.recent("s1", "algebra")) == 1
    window.clear("s1", "algebra")
    assert window.recent("s1", "algebra") == []
    assert len(window.recent("s2", "algebra")) == 1


def test_recent_entry_round_trip_keeps_fingerprint():
    entry = RecentEntry.from_text("כמה זה 25% מתוך 80?")
    restored = RecentEntry.from_dict(entry.to_dict())
    assert restored.fingerprint == entry.fingerprint
    assert restored.numbers == ["25", "80"]


class FakeRedisPipeline:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def rpush(self, key, value):
        self.ops.append(("rpush", key, value))

    def ltrim(self, key, start, end):
        self.ops.append(("ltrim", key, start, end))

    def expire(self, key, ttl):
        self.ops.append(("expire", key, ttl))

    def execute(self):
        for op in self.ops:
            if op[0] == "rpush":
                self.client.lists.setdefault(op[1], []).append(op[2])
            elif op[0] == "ltrim":
                items = self.client.lists.get(op[1], [])
                self.client.lists[op[1]] = items[op[2] :] if op[2] < 0 else items
            else:
                self.client.ttls[op[1]] = op[2]
        self.ops = []


class FakeRedis:
    """In-memory stand-in for the handful of list commands the window uses."""

    def __init__(self):
        self.lists: dict[str, list[str]] = {}
        self.ttls: dict[str, int] = {}

    def pipeline(self, transaction=True):
        return FakeRedisPipeline(self)

    def lrange(self, key, start, end):
        return self.lists.get(key, [])[start:]

    def delete(self, key):
        self.lists.pop(key, None)


def test_redis_window_uses_capped_list_with_ttl():
    client = FakeRedis()
    window = RedisRecentWindow(client=client, max_size=2, ttl_seconds=60)
    window.add("s1", "algebra", "פתרו 2x = 8")
    window.add("s1", "algebra", "פתרו 3x = 9")
    window.add("s1", "algebra", "פתרו 4x = 20")

    key = "practice:recent:s1_algebra"
    assert len(client.lists[key]) == 2
    assert client.ttls[key] == 60
    assert [e.question for e in window.recent("s1", "algebra")] == ["פתרו 3x = 9", "פתרו 4x = 20"]

    window.clear("s1", "algebra")
    assert window.recent("s1", "algebra") == []


def test_build_recent_window_falls_back_to_memory_without_redis():
    assert isinstance(build_recent_window("memory"), InMemoryRecentWindow)
    assert isinstance(build_recent_window("redis"), InMemoryRecentWindow)


# === Avoid block ===


def test_avoidance_prompt_empty_without_history():
    assert build_avoidance_prompt([], []) == ""


def test_avoidance_prompt_lists_last_three_and_history():
    entries = [RecentEntry.from_text(f"שאלה מספר {i} עם המספר {i * 10}") for i in range(1, 5)]
    prompt = build_avoidance_prompt(entries, ["שאלה מספר 4 עם המספר 40", "שאלה ישנה 7"])

    assert "שאלה מספר 1 " not in prompt
    assert "Numbers used: 4, 40" in prompt
    assert "Previously seen on this topic:" in prompt
    assert "- שאלה ישנה 7" in prompt
    # Already listed from the session window, not repeated as history
    assert prompt.count("שאלה מספר 4 עם המספר 40") == 1
    assert "Use completely different numbers" in prompt


def test_avoidance_prompt_truncates_previews():
    long_text = "א" * 200
    prompt = build_avoidance_prompt([RecentEntry.from_text(long_text)], [])
    assert f'"{"א" * 80}..."' in prompt
    assert "א" * 81 not in prompt


# === Historical tier ===


def _exposure(db, student, text, question_id=None, topic="algebra", age_days=0, seconds=0):
    created = datetime.now(UTC) - timedelta(days=age_days, seconds=seconds)
    db.add(
        ExposureRecord(
            student_id=student.id,
            question_id=question_id,
            topic_key=topic,
            question_text=text,
            created_at=created,
        )
    )


def test_historical_texts_are_distinct_newest_first_within_window(db):
    student = Student(external_id="hist-1")
    db.add(student)
    db.flush()

    _exposure(db, student, "ישנה מאוד", age_days=30)
    _exposure(db, student, "ראשונה", seconds=30)
    _exposure(db, student, "שנייה", seconds=20)
    _exposure(db, student, "ראשונה", seconds=10)
    _exposure(db, student, "נושא אחר", topic="geometry")
    db.commit()

    assert get_historical_texts(db, student.id, "algebra", days=14) == ["ראשונה", "שנייה"]


def test_recent_exposure_ids_skip_unstored_questions(db, add_question):
    student = Student(external_id="hist-2")
    db.add(student)
    db.flush()
    q1 = add_question("פתרו x + 1 = 2")
    q2 = add_question("פתרו x + 2 = 3")

    _exposure(db, student, q1.question_text, question_id=q1.id, seconds=3)
    _exposure(db, student, q2.question_text, question_id=q2.id, seconds=2)
    _exposure(db, student, "ללא מזהה", seconds=1)
    db.commit()

    assert get_recent_exposure_ids(db, student.id) == {q1.id, q2.id}
    assert len(get_recent_exposure_ids(db, student.id, limit=1)) == 1


def test_no_shared_numbers_or_keywords_is_never_similar():
    recent = [fingerprint("במשולש אורך הבסיס 10 והגובה 6")]
    assert not is_similar("כמה כדורים אדומים יש בכד 3 ו-9", recent)
