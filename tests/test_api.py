"""End-to-end tests of the HTTP API with a fake generative backend."""

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeLLMClient, fake_extract, fake_pdf, sha
from server.api_server import create_app


def web_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/paper.pdf":
        return httpx.Response(200, content=fake_pdf("remote paper"), headers={"content-type": "application/pdf"})
    return httpx.Response(404)


@pytest.fixture
def llm():
    return FakeLLMClient(["## Summary\n", "Short ", "text."])


@pytest.fixture
def client(tmp_path, monkeypatch, llm):
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    app = create_app(llm_client=llm, web_transport=httpx.MockTransport(web_handler), text_extractor=fake_extract)
    with TestClient(app) as test_client:
        yield test_client


def upload(client, topic, label, filename="paper.pdf"):
    return client.post(
        f"/api/topics/{topic}/documents/upload",
        files={"file": (filename, fake_pdf(label), "application/pdf")},
    )


class TestTopics:
    def test_create_list_rename_delete(self, client):
        assert client.post("/api/topics", json={"topicName": "physics"}).status_code == 201
        assert client.get("/api/topics").json() == [{"name": "physics", "doc_count": 0}]

        assert client.patch("/api/topics/physics", json={"newName": "quantum"}).status_code == 200
        assert [t["name"] for t in client.get("/api/topics").json()] == ["quantum"]

        assert client.delete("/api/topics/quantum").status_code == 200
        assert client.get("/api/topics").json() == []

    def test_invalid_name(self, client):
        response = client.post("/api/topics", json={"topicName": "../etc"})
        assert response.status_code == 400
        assert "Invalid topic name" in response.json()["detail"]

    def test_delete_non_empty_topic(self, client):
        client.post("/api/topics", json={"topicName": "physics"})
        upload(client, "physics", "one")
        assert client.delete("/api/topics/physics").status_code == 409

    def test_unknown_topic(self, client):
        assert client.delete("/api/topics/missing").status_code == 404
        assert client.get("/api/topics/missing/documents").status_code == 404


class TestDocuments:
    def test_upload_then_duplicate(self, client):
        client.post("/api/topics", json={"topicName": "physics"})

        first = upload(client, "physics", "one", filename="Relativity.pdf")
        assert first.status_code == 201
        body = first.json()
        assert body["is_duplicate"] is False
        assert body["document"]["hash"] == sha(fake_pdf("one"))
        assert body["document"]["title"] == "Relativity"
        assert body["document"]["topic"] == "physics"
        assert body["document"]["has_summary"] is False
        assert "uploadDate" in body["document"]

        second = upload(client, "physics", "one", filename="other.pdf")
        assert second.status_code == 200
        assert second.json()["is_duplicate"] is True
        assert second.json()["document"]["title"] == "Relativity"
        assert client.get("/api/topics").json() == [{"name": "physics", "doc_count": 1}]

    def test_upload_into_missing_topic(self, client):
        assert upload(client, "nowhere", "one").status_code == 404

    def test_url_ingest(self, client):
        client.post("/api/topics", json={"topicName": "physics"})

        response = client.post("/api/topics/physics/documents/url", json={"url": "https://example.org/paper.pdf"})
        assert response.status_code == 201
        assert response.json()["document"]["source_url"] == "https://example.org/paper.pdf"

        missing = client.post("/api/topics/physics/documents/url", json={"url": "https://example.org/gone.pdf"})
        assert missing.status_code == 502

    def test_get_update_and_download(self, client):
        client.post("/api/topics", json={"topicName": "physics"})
        doc_hash = upload(client, "physics", "one").json()["document"]["hash"]

        response = client.put(f"/api/documents/{doc_hash}", json={"title": "Edited", "authors": ["A. Author"], "year": None})
        assert response.status_code == 200
        assert response.json()["title"] == "Edited"
        assert response.json()["year"] is None

        document = client.get(f"/api/documents/{doc_hash}").json()
        assert document["title"] == "Edited"
        assert document["authors"] == ["A. Author"]
        assert document["hash"] == doc_hash

        pdf = client.get(f"/api/pdfs/{doc_hash}")
        assert pdf.status_code == 200
        assert pdf.headers["content-type"] == "application/pdf"
        assert pdf.content == fake_pdf("one")

    def test_update_with_blank_year_clears_it(self, client):
        client.post("/api/topics", json={"topicName": "physics"})
        doc_hash = upload(client, "physics", "one").json()["document"]["hash"]

        response = client.put(f"/api/documents/{doc_hash}", json={"title": "T", "authors": [], "year": "", "tags": []})
        assert response.status_code == 200
        assert response.json()["year"] is None
        assert client.get(f"/api/documents/{doc_hash}").json()["year"] is None

        response = client.put(f"/api/documents/{doc_hash}", json={"year": "1999"})
        assert response.json()["year"] == 1999

    def test_listing(self, client):
        client.post("/api/topics", json={"topicName": "physics"})
        upload(client, "physics", "one", filename="b.pdf")
        upload(client, "physics", "two", filename="a.pdf")

        titles = [doc["title"] for doc in client.get("/api/topics/physics/documents").json()]
        assert titles == ["a", "b"]

    def test_move(self, client):
        client.post("/api/topics", json={"topicName": "physics"})
        doc_hash = upload(client, "physics", "one").json()["document"]["hash"]

        assert client.patch(f"/api/documents/{doc_hash}", json={"newTopic": "missing"}).status_code == 409

        client.post("/api/topics", json={"topicName": "biology"})
        response = client.patch(f"/api/documents/{doc_hash}", json={"newTopic": "biology"})
        assert response.status_code == 200
        assert response.json()["topic"] == "biology"
        assert client.get(f"/api/documents/{doc_hash}").json()["topic"] == "biology"

    def test_delete(self, client):
        client.post("/api/topics", json={"topicName": "physics"})
        doc_hash = upload(client, "physics", "one").json()["document"]["hash"]

        assert client.delete(f"/api/documents/{doc_hash}").status_code == 200
        assert client.get(f"/api/documents/{doc_hash}").status_code == 404
        assert client.get(f"/api/pdfs/{doc_hash}").status_code == 404

    def test_unknown_hash(self, client):
        assert client.get("/api/documents/not-a-hash").status_code == 404


class TestGeneration:
    def test_summarize_streams_and_stores(self, client, llm):
        client.post("/api/topics", json={"topicName": "physics"})
        doc_hash = upload(client, "physics", "some text").json()["document"]["hash"]

        assert client.get(f"/api/summaries/{doc_hash}").status_code == 404

        response = client.post(f"/api/summarize/{doc_hash}")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "## Summary\nShort text."
        assert "some text" in llm.prompts[0]

        summary = client.get(f"/api/summaries/{doc_hash}")
        assert summary.status_code == 200
        assert summary.text == "## Summary\nShort text."
        assert client.get(f"/api/documents/{doc_hash}").json()["has_summary"] is True

        assert client.delete(f"/api/summaries/{doc_hash}").status_code == 200
        assert client.delete(f"/api/summaries/{doc_hash}").status_code == 404

    def test_summarize_with_unknown_template(self, client):
        client.post("/api/topics", json={"topicName": "physics"})
        doc_hash = upload(client, "physics", "some text").json()["document"]["hash"]

        response = client.post(f"/api/summarize/{doc_hash}", json={"templateId": "missing"})
        assert response.status_code == 404

    def test_summarize_unknown_document(self, client):
        assert client.post(f"/api/summarize/{sha(b'nothing')}").status_code == 404

    def test_chat(self, client, llm):
        client.post("/api/topics", json={"topicName": "physics"})
        doc_hash = upload(client, "physics", "some text").json()["document"]["hash"]

        response = client.post(f"/api/chat/{doc_hash}", json={"message": "What is it about?"})
        assert response.status_code == 200
        assert response.text == "## Summary\nShort text."
        assert "What is it about?" in llm.prompts[0]
        assert client.get(f"/api/summaries/{doc_hash}").status_code == 404

    def test_chat_requires_message(self, client):
        client.post("/api/topics", json={"topicName": "physics"})
        doc_hash = upload(client, "physics", "some text").json()["document"]["hash"]

        assert client.post(f"/api/chat/{doc_hash}", json={"message": " "}).status_code == 400
