from fastapi.testclient import TestClient

from conftest import COURSE_ID, default_questions


def _create_payload(**overrides: object) -> dict[str, object]:
    payload = {
        "title": "Geography basics",
        "course": COURSE_ID,
        "questions": default_questions(),
        "settings": {"maxAttempts": 2, "shuffleQuestions": False, "shuffleOptions": False},
        "isPublished": True,
    }
    payload.update(overrides)
    return payload


def test_requests_without_token_are_rejected(client: TestClient) -> None:
    response = client.get("/api/auth/me")
    assert response.status_code == 401


def test_register_login_and_me(client: TestClient) -> None:
    response = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "alice@example.com", "password": "secret123"},
    )
    assert response.status_code == 201
    assert response.json()["role"] == "student"

    duplicate = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "other@example.com", "password": "secret123"},
    )
    assert duplicate.status_code == 400

    login = client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.json()["username"] == "alice"

    client.post("/api/auth/logout", headers=headers)
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_wrong_password_is_rejected(client: TestClient) -> None:
    client.post(
        "/api/auth/register",
        json={"username": "bob", "email": "bob@example.com", "password": "secret123"},
    )
    response = client.post("/api/auth/login", json={"username": "bob", "password": "wrong"})
    assert response.status_code == 401


def test_unverified_teacher_cannot_create_tests(client, auth_headers, unverified_teacher, course) -> None:
    response = client.post("/api/tests", json=_create_payload(), headers=auth_headers(unverified_teacher))
    assert response.status_code == 403
    assert response.json()["success"] is False
    assert response.json()["error"] == "NOT_AUTHORIZED"


def test_validation_errors_list_every_field(client, auth_headers, teacher, course) -> None:
    payload = _create_payload(questions=[{"question": "Blank?", "type": "fill_blank"}])
    response = client.post("/api/tests", json=payload, headers=auth_headers(teacher))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["details"]["errors"] == [
        {"field": "questions[0].correctAnswer", "reason": "Question 1 correct answer is required"}
    ]


def test_full_attempt_flow(client, auth_headers, teacher, student, course) -> None:
    teacher_headers = auth_headers(teacher)
    student_headers = auth_headers(student)

    created = client.post("/api/tests", json=_create_payload(), headers=teacher_headers)
    assert created.status_code == 201
    test_id = created.json()["id"]

    summary = client.get(f"/api/tests/{test_id}", headers=student_headers).json()
    assert "questions" not in summary
    assert summary["totalQuestions"] == 3

    started = client.post(f"/api/tests/{test_id}/start", headers=student_headers)
    assert started.status_code == 201
    body = started.json()
    attempt_id = body["attemptId"]
    assert body["attempt"]["attemptNumber"] == 1
    for question in body["test"]["questions"]:
        assert "correctAnswer" not in question
        assert all(set(option) == {"text"} for option in question["options"])

    again = client.post(f"/api/tests/{test_id}/start", headers=student_headers)
    assert again.status_code == 400
    assert again.json()["error"] == "ATTEMPT_IN_PROGRESS"

    first_question = body["test"]["questions"][0]
    answered = client.post(
        f"/api/attempts/{attempt_id}/answers",
        json={"questionId": first_question["id"], "answer": "Paris", "timeSpent": 12},
        headers=student_headers,
    )
    assert answered.status_code == 200
    assert answered.json() == {
        "isCorrect": True,
        "points": 2,
        "totalScore": 100,
        "earnedPoints": 2,
        "totalPoints": 2,
    }

    finished = client.post(f"/api/attempts/{attempt_id}/finish", headers=student_headers)
    assert finished.status_code == 200
    assert finished.json()["isPassed"] is True
    assert finished.json()["attempt"]["status"] == "completed"

    late = client.post(
        f"/api/attempts/{attempt_id}/answers",
        json={"questionId": first_question["id"], "answer": "London"},
        headers=student_headers,
    )
    assert late.status_code == 400
    assert late.json()["error"] == "INVALID_STATE"

    review = client.get(f"/api/attempts/{attempt_id}", headers=student_headers).json()
    assert review["answers"][0]["isCorrect"] is True
    assert review["answers"][0]["correctAnswer"] == "Paris"

    stats = client.get(f"/api/tests/{test_id}/statistics", headers=teacher_headers).json()
    assert stats["totalAttempts"] == 1
    assert stats["passRate"] == 100

    assert client.get(f"/api/tests/{test_id}/statistics", headers=student_headers).status_code == 403

    attempts = client.get(f"/api/tests/{test_id}/attempts", headers=teacher_headers).json()
    assert [a["id"] for a in attempts] == [attempt_id]


def test_attempt_limit_over_http(client, auth_headers, teacher, student, course) -> None:
    teacher_headers = auth_headers(teacher)
    student_headers = auth_headers(student)
    settings = {"maxAttempts": 1, "shuffleQuestions": False, "shuffleOptions": False}
    test_id = client.post(
        "/api/tests", json=_create_payload(settings=settings), headers=teacher_headers
    ).json()["id"]

    attempt_id = client.post(f"/api/tests/{test_id}/start", headers=student_headers).json()["attemptId"]
    abandoned = client.post(f"/api/attempts/{attempt_id}/abandon", headers=student_headers)
    assert abandoned.json()["status"] == "abandoned"

    response = client.post(f"/api/tests/{test_id}/start", headers=student_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "ATTEMPT_LIMIT_EXCEEDED"
    assert response.json()["details"] == {"maxAttempts": 1}


def test_teachers_cannot_take_tests(client, auth_headers, teacher, course) -> None:
    headers = auth_headers(teacher)
    test_id = client.post("/api/tests", json=_create_payload(), headers=headers).json()["id"]
    response = client.post(f"/api/tests/{test_id}/start", headers=headers)
    assert response.status_code == 403


def test_unenrolled_student_cannot_start(client, auth_headers, teacher, outsider, course) -> None:
    test_id = client.post(
        "/api/tests", json=_create_payload(), headers=auth_headers(teacher)
    ).json()["id"]
    response = client.post(f"/api/tests/{test_id}/start", headers=auth_headers(outsider))
    assert response.status_code == 403
    assert response.json()["error"] == "NOT_ENROLLED"


def test_missing_resources_are_404(client, auth_headers, student) -> None:
    headers = auth_headers(student)
    assert client.get("/api/tests/nope", headers=headers).json()["error"] == "TEST_NOT_FOUND"
    response = client.post("/api/attempts/nope/finish", headers=headers)
    assert response.status_code == 404
    assert response.json()["error"] == "ATTEMPT_NOT_FOUND"


def test_owner_updates_and_deletes(client, auth_headers, teacher, other_teacher, course) -> None:
    headers = auth_headers(teacher)
    test_id = client.post("/api/tests", json=_create_payload(), headers=headers).json()["id"]

    patched = client.patch(f"/api/tests/{test_id}", json={"isPublished": False}, headers=headers)
    assert patched.status_code == 200
    assert patched.json()["isPublished"] is False

    denied = client.delete(f"/api/tests/{test_id}", headers=auth_headers(other_teacher))
    assert denied.status_code == 403

    assert client.delete(f"/api/tests/{test_id}", headers=headers).status_code == 200
    assert client.get(f"/api/tests/{test_id}", headers=headers).status_code == 404


def test_list_course_tests(client, auth_headers, teacher, student, course) -> None:
    headers = auth_headers(teacher)
    client.post("/api/tests", json=_create_payload(), headers=headers)
    client.post("/api/tests", json=_create_payload(isPublished=False), headers=headers)

    assert len(client.get(f"/api/tests/course/{COURSE_ID}", headers=headers).json()) == 2
    assert len(client.get(f"/api/tests/course/{COURSE_ID}", headers=auth_headers(student)).json()) == 1


def test_question_edits_wait_for_running_attempts(client, auth_headers, teacher, student, course) -> None:
    teacher_headers = auth_headers(teacher)
    test_id = client.post("/api/tests", json=_create_payload(), headers=teacher_headers).json()["id"]
    client.post(f"/api/tests/{test_id}/start", headers=auth_headers(student))

    response = client.patch(
        f"/api/tests/{test_id}",
        json={"questions": default_questions()[:1]},
        headers=teacher_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "QUESTIONS_LOCKED"

    settings_only = client.patch(
        f"/api/tests/{test_id}", json={"settings": {"passingScore": 80}}, headers=teacher_headers
    )
    assert settings_only.status_code == 200
    assert settings_only.json()["settings"]["passingScore"] == 80
    assert settings_only.json()["settings"]["maxAttempts"] == 2
