"""Test document management endpoints"""

import asyncio

from learning_assistant.config import settings
from learning_assistant.models import Document, DocumentStatus
from learning_assistant.services.course_access import documents_in_scope

TEACHER = {"X-User-Id": "1"}
STUDENT = {"X-User-Id": "2"}
OUTSIDER = {"X-User-Id": "3"}

TEXT = "Enzymes are proteins that speed up chemical reactions in living cells."


def upload_text(client, course_id, headers=TEACHER, title="Enzymes", content=TEXT):
    return client.post(
        f"/api/documents/text/{course_id}",
        json={"title": title, "content": content},
        headers=headers
    )


def test_teacher_uploads_text(client, course, task_runner):
    response = upload_text(client, course.id)

    assert response.status_code == 201
    document = response.json()["document"]
    assert document["status"] == "unprocessed"
    assert document["title"] == "Enzymes"
    assert document["source_type"] == "text"
    assert document["word_count"] == len(TEXT.split())

    # Processing is queued, not awaited
    assert len(task_runner.submitted) == 1
    _, args = task_runner.submitted[0]
    assert args == (document["id"], 1)


def test_text_upload_with_topics(client, course):
    response = client.post(
        f"/api/documents/text/{course.id}",
        json={"title": "Enzymes", "content": TEXT, "topics": [" Catalysis ", "", "Proteins"]},
        headers=TEACHER
    )

    assert response.status_code == 201
    assert response.json()["document"]["topics"] == ["Catalysis", "Proteins"]


def test_only_teacher_uploads(client, course, task_runner):
    assert upload_text(client, course.id, headers=STUDENT).status_code == 403
    assert upload_text(client, 9999).status_code == 404
    assert task_runner.submitted == []


def test_text_upload_validation(client, course):
    assert upload_text(client, course.id, content="too short").status_code == 422
    assert upload_text(client, course.id, title="").status_code == 422
    assert upload_text(client, course.id, title="t" * 201).status_code == 422
    assert upload_text(client, course.id, title="   ").status_code == 400


def test_upload_txt_file(client, course, task_runner):
    response = client.post(
        f"/api/documents/upload/{course.id}",
        files={"file": ("lecture-notes.txt", TEXT.encode(), "text/plain")},
        headers=TEACHER
    )

    assert response.status_code == 201
    document = response.json()["document"]
    assert document["title"] == "lecture-notes"
    assert document["file_name"] == "lecture-notes.txt"
    assert document["file_size"] == len(TEXT.encode())
    assert len(task_runner.submitted) == 1


def test_upload_with_title(client, course):
    response = client.post(
        f"/api/documents/upload/{course.id}",
        files={"file": ("a.txt", TEXT.encode(), "text/plain")},
        data={"title": "Week 1"},
        headers=TEACHER
    )
    assert response.json()["document"]["title"] == "Week 1"


def test_upload_rejects_bad_files(client, course, monkeypatch):
    unsupported = client.post(
        f"/api/documents/upload/{course.id}",
        files={"file": ("virus.exe", b"MZ....", "application/octet-stream")},
        headers=TEACHER
    )
    empty = client.post(
        f"/api/documents/upload/{course.id}",
        files={"file": ("empty.txt", b"   ", "text/plain")},
        headers=TEACHER
    )
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_BYTES", 10)
    too_big = client.post(
        f"/api/documents/upload/{course.id}",
        files={"file": ("big.txt", TEXT.encode(), "text/plain")},
        headers=TEACHER
    )

    assert unsupported.status_code == 400
    assert empty.status_code == 400
    assert too_big.status_code == 400
    assert "limit" in too_big.json()["detail"]


def test_list_and_get_documents(client, course, add_document):
    doc = add_document(course.id, title="Cells")
    add_document(course.id, title="Deleted", is_active=False)

    listing = client.get(f"/api/documents/course/{course.id}", headers=STUDENT)
    assert listing.status_code == 200
    assert [item["title"] for item in listing.json()["items"]] == ["Cells"]
    assert listing.json()["total"] == 1

    detail = client.get(f"/api/documents/{doc.id}", headers=STUDENT)
    assert detail.status_code == 200
    assert detail.json()["status"] == "processed"

    assert client.get(f"/api/documents/course/{course.id}", headers=OUTSIDER).status_code == 403
    assert client.get(f"/api/documents/{doc.id}", headers=OUTSIDER).status_code == 403


def test_soft_deleted_document_is_not_found(client, course, add_document):
    doc = add_document(course.id, is_active=False)
    assert client.get(f"/api/documents/{doc.id}", headers=TEACHER).status_code == 404
    assert client.post(f"/api/documents/{doc.id}/reprocess", headers=TEACHER).status_code == 404


def test_replace_content_bumps_generation(client, course, db, task_runner):
    document_id = upload_text(client, course.id).json()["document"]["id"]

    response = client.put(
        f"/api/documents/{document_id}/content",
        json={"content": "Enzymes lower the activation energy of reactions."},
        headers=TEACHER
    )

    assert response.status_code == 200
    assert response.json()["status"] == "unprocessed"
    db.expire_all()
    assert db.get(Document, document_id).processing_generation == 2
    assert [args for _, args in task_runner.submitted] == [(document_id, 1), (document_id, 2)]


def test_replaced_document_leaves_retrieval_until_reprocessed(client, course, db, add_document, task_runner):
    doc = add_document(course.id, chunks=[("Old enzyme notes.", [1.0, 0.0, 0.0])])
    assert [d.id for d in documents_in_scope(db, course.id)] == [doc.id]

    client.put(
        f"/api/documents/{doc.id}/content",
        json={"content": "Enzymes lower the activation energy of reactions."},
        headers=TEACHER
    )

    db.expire_all()
    assert documents_in_scope(db, course.id) == []


def test_reprocess_requires_teacher(client, course, add_document, task_runner):
    doc = add_document(course.id, status=DocumentStatus.FAILED)

    assert client.post(f"/api/documents/{doc.id}/reprocess", headers=STUDENT).status_code == 403
    response = client.post(f"/api/documents/{doc.id}/reprocess", headers=TEACHER)

    assert response.status_code == 200
    assert response.json()["status"] == "unprocessed"
    assert len(task_runner.submitted) == 1


def test_upload_process_then_ask(client, course, db, task_runner, providers, fake_provider):
    providers[:] = [fake_provider("gemini", chat_text="They speed up reactions.", default_vector=[0.6, 0.8])]
    document_id = upload_text(client, course.id).json()["document"]["id"]

    func, args = task_runner.submitted[0]
    status = asyncio.run(func(*args))
    assert status == DocumentStatus.PROCESSED
    # The pipeline wrote through its own session
    db.expire_all()

    detail = client.get(f"/api/documents/{document_id}", headers=STUDENT).json()
    assert detail["status"] == "processed"
    assert detail["chunks_count"] == 1

    answer = client.post(
        f"/api/rag/ask/{course.id}",
        json={"question": "What do enzymes do?"},
        headers=STUDENT
    ).json()
    assert answer["answer"] == "They speed up reactions."
    assert answer["confidence"] == 100
    assert answer["sources"][0]["document_title"] == "Enzymes"
