"""Test question answering endpoint"""

from learning_assistant.main import app
from learning_assistant.models import DocumentStatus
from learning_assistant.rag.prompt_templates import ANSWER_FAILED_MESSAGE, NO_INFORMATION_ANSWER
from learning_assistant.security.rate_limiter import RateLimiter, get_rate_limiter

TEACHER = {"X-User-Id": "1"}
STUDENT = {"X-User-Id": "2"}
OUTSIDER = {"X-User-Id": "3"}


def ask(client, course_id, question="How do cells divide?", headers=STUDENT):
    return client.post(f"/api/rag/ask/{course_id}", json={"question": question}, headers=headers)


def test_no_processed_documents_returns_fixed_answer(client, course, add_document, providers):
    add_document(course.id, status=DocumentStatus.UNPROCESSED, chunks=[("Mitosis has four phases.", [1.0, 0.0])])

    response = ask(client, course.id)

    assert response.status_code == 200
    data = response.json()
    assert data["answer"] == NO_INFORMATION_ANSWER
    assert data["confidence"] == 0
    assert data["sources"] == []
    assert data["question"] == "How do cells divide?"
    assert providers[0].chat_calls == []
    assert providers[0].embed_calls == []


def test_answer_with_sources(client, course, add_document, providers, fake_provider):
    providers[:] = [fake_provider("gemini", chat_text="Cells divide by mitosis.", default_vector=[1.0, 0.0])]
    add_document(
        course.id,
        title="Cell Cycle",
        chunks=[("Mitosis has four phases.", [1.0, 0.0]), ("Unrelated text.", [0.0, 1.0])]
    )

    response = ask(client, course.id, headers=TEACHER)

    assert response.status_code == 200
    data = response.json()
    assert data["answer"] == "Cells divide by mitosis."
    assert data["mode"] == "embedding"
    assert data["sources"][0] == {
        "document_id": data["sources"][0]["document_id"],
        "document_title": "Cell Cycle",
        "snippet": "Mitosis has four phases....",
        "similarity": 100
    }
    assert data["confidence"] == 50


def test_question_is_trimmed_and_validated(client, course):
    assert ask(client, course.id, question="   ").status_code == 400
    assert ask(client, course.id, question="x" * 501).status_code == 422
    assert ask(client, course.id, question="").status_code == 422


def test_requires_user(client, course):
    response = client.post(f"/api/rag/ask/{course.id}", json={"question": "Hi?"})
    assert response.status_code == 401


def test_course_access(client, course):
    assert ask(client, course.id, headers=OUTSIDER).status_code == 403
    assert ask(client, 9999).status_code == 404


def test_inactive_course_is_not_found(client, course, db):
    course.is_active = False
    db.commit()
    assert ask(client, course.id).status_code == 404


def test_provider_failure_is_service_unavailable(client, course, add_document, providers, fake_provider):
    providers[:] = [fake_provider("gemini", chat_error=Exception("You exceeded your current quota"))]
    add_document(course.id, chunks=[("Mitosis has four phases.", [1.0, 0.0, 0.0])])

    response = ask(client, course.id)

    assert response.status_code == 503
    assert response.json()["detail"] == ANSWER_FAILED_MESSAGE


def test_rate_limited(client, course, fake_redis):
    limiter = RateLimiter(limit=2, window=60, redis_client=fake_redis)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    assert ask(client, course.id).status_code == 200
    assert ask(client, course.id).status_code == 200
    response = ask(client, course.id)

    assert response.status_code == 429
    assert response.json()["retry_after"] >= 1
    assert "Retry-After" in response.headers


def test_unauthenticated_requests_do_not_spend_the_window(client, course, fake_redis):
    limiter = RateLimiter(limit=1, window=60, redis_client=fake_redis)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    for _ in range(3):
        response = client.post(f"/api/rag/ask/{course.id}", json={"question": "Hi?"})
        assert response.status_code == 401

    assert ask(client, course.id).status_code == 200
    assert ask(client, course.id).status_code == 429


def test_course_topics(client, course, add_document):
    add_document(course.id, title="Cells", topics=["Mitosis", "Cell cycle"])
    add_document(course.id, title="Genetics", status=DocumentStatus.PARTIALLY_PROCESSED, topics=["mitosis ", "DNA"])
    add_document(course.id, title="Draft", status=DocumentStatus.UNPROCESSED, topics=["Unpublished"])
    add_document(course.id, title="Removed", topics=["Archived"], is_active=False)

    response = client.get(f"/api/rag/topics/{course.id}", headers=STUDENT)

    assert response.status_code == 200
    data = response.json()
    assert data["topics"] == ["Mitosis", "Cell cycle", "DNA"]
    assert data["documents_count"] == 2
    assert len(data["suggested_questions"]) == 5


def test_course_topics_requires_access(client, course):
    assert client.get(f"/api/rag/topics/{course.id}", headers=OUTSIDER).status_code == 403
    assert client.get("/api/rag/topics/9999", headers=STUDENT).status_code == 404
    assert client.get(f"/api/rag/topics/{course.id}").status_code == 401

    data = client.get(f"/api/rag/topics/{course.id}", headers=TEACHER).json()
    assert data["topics"] == []
    assert data["documents_count"] == 0
