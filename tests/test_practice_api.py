"""
API tests for the practice endpoints.

Tests:
- Question retrieval and answer submission round trip
- Difficulty endpoints
- Classification endpoint
- Error envelope for invalid input
"""

from adaptive_practice.learning_engine.difficulty.service import check_adjustment

PREFIX = "/v1/practice"


def test_health(client):
    response = client.get("/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_reports_checks(client):
    response = client.get("/v1/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["checks"]["db"]["status"] == "ok"
    assert body["checks"]["generation"]["message"].startswith("Disabled")


def test_request_id_is_echoed(client):
    response = client.get("/v1/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_next_question_and_answer_round_trip(client, add_question):
    question = add_question("פתרו את המשוואה x + 9 = 14", correct_answer="5")

    response = client.post(
        f"{PREFIX}/questions/next",
        json={"student_id": "api-1", "topic": "linear-equations", "difficulty": "medium", "grade": 8},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["match_type"] == "exact"
    assert body["question"]["question_id"] == question.id
    # The answer is never sent with the question
    assert "correct_answer" not in body["question"]

    response = client.post(
        f"{PREFIX}/answers",
        json={"student_id": "api-1", "question_id": question.id, "answer": "x = 5", "time_spent_seconds": 20},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["is_correct"] is True
    assert body["correct_answer"] == "5"
    assert body["adjustment"]["new_difficulty"] == "medium"


def test_next_question_unavailable(client):
    response = client.post(
        f"{PREFIX}/questions/next",
        json={"student_id": "api-2", "topic": "functions", "difficulty": "easy", "grade": 8},
    )
    assert response.status_code == 200
    assert response.json()["ok"] is False
    assert response.json()["reason"] == "no_question_available"


def test_next_question_validation_error(client):
    response = client.post(
        f"{PREFIX}/questions/next",
        json={"student_id": "api-3", "topic": "algebra", "difficulty": "extreme"},
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_blank_topic_is_rejected_with_400(client):
    response = client.post(
        f"{PREFIX}/difficulty/reset",
        json={"student_id": "api-4", "topic": "   "},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["details"] == {"field": "topic"}


def test_difficulty_check_and_recommendation(client):
    for _ in range(3):
        response = client.post(
            f"{PREFIX}/difficulty/check",
            json={"student_id": "api-5", "topic": "algebra", "difficulty": "medium", "is_correct": True},
        )
        assert response.status_code == 200
    assert response.json()["should_adjust"] is True
    assert response.json()["new_difficulty"] == "hard"

    response = client.get(
        f"{PREFIX}/difficulty/recommended", params={"student_id": "api-5", "topic": "algebra"}
    )
    assert response.status_code == 200
    body = response.json()
    # Below the five-answer minimum the stored label is held
    assert body["difficulty"] == "hard"
    assert body["confidence"] == 0.6


def test_recommendation_for_new_student(client):
    response = client.get(f"{PREFIX}/difficulty/recommended", params={"student_id": "api-new"})
    assert response.status_code == 200
    assert response.json()["difficulty"] == "medium"
    assert response.json()["confidence"] == 0.0


def test_progression_reset_and_stats(client, db):
    for _ in range(3):
        check_adjustment(db, "api-6", "geometry", "medium", False)

    progression = client.get(
        f"{PREFIX}/difficulty/progression", params={"student_id": "api-6", "topic": "geometry"}
    ).json()
    assert progression["state"]["difficulty"] == "easy"
    assert progression["history"][0]["to_difficulty"] == "easy"

    reset = client.post(f"{PREFIX}/difficulty/reset", json={"student_id": "api-6", "topic": "geometry"})
    assert reset.status_code == 200
    assert reset.json()["difficulty"] == "medium"

    stats = client.get(f"{PREFIX}/difficulty/stats", params={"student_id": "api-6"}).json()
    assert [row["topic"] for row in stats] == ["geometry"]


def test_classify_endpoint(client):
    response = client.post(f"{PREFIX}/classify", json={"text": "חשבו את הנגזרת של פונקציה"})
    assert response.status_code == 200
    body = response.json()
    assert body["grade"] == 12
    assert body["topic"] == "חשבון דיפרנציאלי"


def test_store_stats_endpoint(client, add_question):
    add_question("שאלה לסטטיסטיקה 1", difficulty="hard")

    response = client.get(f"{PREFIX}/stats", params={"difficulty": "hard"})
    assert response.status_code == 200
    assert response.json()["total_questions"] == 1
