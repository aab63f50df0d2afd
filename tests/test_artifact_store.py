"""Tests for the filesystem layout: topics, manifests, binaries, summaries."""

import json
import os

import pytest

from conftest import fake_pdf, run, sha
from shared.exceptions.errors import (
    AlreadyExistsError,
    DestinationNotFoundError,
    DocumentNotFoundError,
    InconsistencyError,
    InvalidNameError,
    SummaryNotFoundError,
    TopicNotEmptyError,
    TopicNotFoundError,
)
from shared.models.document import Document


def add_document(store, topic, label, year=2024, title=None, upload_date="2024-01-01T00:00:00Z"):
    data = fake_pdf(label)
    doc = Document(hash=sha(data), title=title or label, year=year, upload_date=upload_date)
    run(store.write_binary(topic, doc.hash, data))
    run(store.write_manifest(topic, doc.hash, doc))
    return doc, data


class TestTopics:
    def test_create_and_list_counts_manifests(self, store):
        run(store.create_topic("physics"))
        run(store.create_topic("biology"))
        add_document(store, "physics", "one")
        add_document(store, "physics", "two")

        topics = {topic.name: topic.doc_count for topic in run(store.list_topics())}
        assert topics == {"biology": 0, "physics": 2}

    def test_create_is_idempotent_unless_strict(self, store):
        run(store.create_topic("physics"))
        run(store.create_topic("physics"))
        with pytest.raises(AlreadyExistsError):
            run(store.create_topic("physics", strict=True))

    @pytest.mark.parametrize("name", ["", "   ", "..", "a/b", "../etc", "a\\b", "."])
    def test_rejects_unsafe_names(self, store, name):
        with pytest.raises(InvalidNameError):
            run(store.create_topic(name))

    def test_files_in_data_dir_are_not_topics(self, store, data_dir):
        (data_dir / "userprompt.json").write_text("{}")
        run(store.create_topic("physics"))
        assert [topic.name for topic in run(store.list_topics())] == ["physics"]

    def test_delete_refuses_non_empty_topic(self, store):
        run(store.create_topic("physics"))
        doc, _ = add_document(store, "physics", "one")

        with pytest.raises(TopicNotEmptyError):
            run(store.delete_topic("physics"))

        run(store.delete_document("physics", doc.hash))
        run(store.delete_topic("physics"))
        assert run(store.list_topics()) == []

    def test_delete_refuses_topic_with_subdirectory(self, store, data_dir):
        run(store.create_topic("physics"))
        (data_dir / "physics" / "stray").mkdir()

        with pytest.raises(InconsistencyError, match="stray"):
            run(store.delete_topic("physics"))
        assert (data_dir / "physics").is_dir()

    def test_delete_missing_topic(self, store):
        with pytest.raises(TopicNotFoundError):
            run(store.delete_topic("nope"))

    def test_rename_keeps_documents(self, store):
        run(store.create_topic("physics"))
        doc, data = add_document(store, "physics", "one")

        run(store.rename_topic("physics", "quantum"))

        assert not run(store.topic_exists("physics"))
        assert run(store.read_manifest("quantum", doc.hash)) == doc
        assert run(store.read_binary("quantum", doc.hash)) == data

    def test_rename_conflicts(self, store):
        run(store.create_topic("a"))
        run(store.create_topic("b"))
        with pytest.raises(AlreadyExistsError):
            run(store.rename_topic("a", "b"))
        with pytest.raises(TopicNotFoundError):
            run(store.rename_topic("missing", "c"))


class TestDocuments:
    def test_manifest_round_trip_uses_upload_date_key(self, store, data_dir):
        run(store.create_topic("physics"))
        doc, _ = add_document(store, "physics", "one")

        raw = (data_dir / "physics" / f"{doc.hash}.json").read_text()
        assert '"uploadDate"' in raw
        assert run(store.read_manifest("physics", doc.hash)) == doc

    def test_read_missing_manifest(self, store):
        run(store.create_topic("physics"))
        with pytest.raises(DocumentNotFoundError):
            run(store.read_manifest("physics", sha(b"nothing")))

    def test_listing_order(self, store):
        run(store.create_topic("physics"))
        add_document(store, "physics", "b", year=2020, title="B")
        add_document(store, "physics", "a", year=2019, title="A")
        add_document(store, "physics", "c", year=2020, title="C")

        titles = [(doc.title, doc.year) for doc in run(store.list_documents("physics"))]
        assert titles == [("B", 2020), ("C", 2020), ("A", 2019)]

    def test_listing_missing_year_sorts_last_and_title_ignores_case(self, store):
        run(store.create_topic("physics"))
        add_document(store, "physics", "x", year=None, title="Alpha")
        add_document(store, "physics", "y", year=2001, title="beta")
        add_document(store, "physics", "z", year=2001, title="Gamma")

        titles = [doc.title for doc in run(store.list_documents("physics"))]
        assert titles == ["beta", "Gamma", "Alpha"]

    def test_listing_ties_keep_upload_order(self, store):
        run(store.create_topic("physics"))
        add_document(store, "physics", "late", year=2020, title="Same", upload_date="2024-05-01T00:00:00Z")
        add_document(store, "physics", "early", year=2020, title="Same", upload_date="2024-01-01T00:00:00Z")

        hashes = [doc.hash for doc in run(store.list_documents("physics"))]
        assert hashes == [sha(fake_pdf("early")), sha(fake_pdf("late"))]

    def test_listing_tolerates_blank_year_and_broken_manifests(self, store, data_dir, caplog):
        run(store.create_topic("physics"))
        valid, _ = add_document(store, "physics", "valid", year=2021, title="Valid")
        blank_hash = sha(fake_pdf("blank"))
        (data_dir / "physics" / f"{blank_hash}.json").write_text(
            json.dumps({"hash": blank_hash, "title": "Blank year", "year": "", "uploadDate": "2024-01-01T00:00:00Z"})
        )
        (data_dir / "physics" / f"{sha(b'broken')}.json").write_text("{not json")

        documents = run(store.list_documents("physics"))

        assert [(doc.title, doc.year) for doc in documents] == [("Valid", 2021), ("Blank year", None)]
        assert "Skipping unreadable manifest" in caplog.text

    def test_list_documents_of_missing_topic(self, store):
        with pytest.raises(TopicNotFoundError):
            run(store.list_documents("nope"))

    def test_derived_text_replace_and_delete(self, store):
        run(store.create_topic("physics"))
        doc, _ = add_document(store, "physics", "one")

        with pytest.raises(SummaryNotFoundError):
            run(store.read_derived_text("physics", doc.hash))

        run(store.write_derived_text("physics", doc.hash, "first"))
        run(store.write_derived_text("physics", doc.hash, "second"))
        assert run(store.read_derived_text("physics", doc.hash)) == "second"

        run(store.delete_derived_text("physics", doc.hash))
        with pytest.raises(SummaryNotFoundError):
            run(store.delete_derived_text("physics", doc.hash))

    def test_writes_leave_no_temp_files(self, store, data_dir):
        run(store.create_topic("physics"))
        doc, _ = add_document(store, "physics", "one")
        run(store.write_derived_text("physics", doc.hash, "summary"))

        names = sorted(path.name for path in (data_dir / "physics").iterdir())
        assert names == sorted([f"{doc.hash}.json", f"{doc.hash}.pdf", f"{doc.hash}.md"])

    def test_delete_removes_all_artifacts(self, store, data_dir):
        run(store.create_topic("physics"))
        doc, _ = add_document(store, "physics", "one")
        run(store.write_derived_text("physics", doc.hash, "summary"))

        run(store.delete_document("physics", doc.hash))
        assert list((data_dir / "physics").iterdir()) == []

    def test_delete_tolerates_missing_binary(self, store, data_dir, caplog):
        run(store.create_topic("physics"))
        doc, _ = add_document(store, "physics", "one")
        (data_dir / "physics" / f"{doc.hash}.pdf").unlink()

        run(store.delete_document("physics", doc.hash))

        assert list((data_dir / "physics").iterdir()) == []
        assert "has no binary file" in caplog.text


class TestMove:
    def test_move_preserves_identity(self, store):
        run(store.create_topic("a"))
        run(store.create_topic("b"))
        doc, data = add_document(store, "a", "one")
        run(store.write_derived_text("a", doc.hash, "summary text"))

        run(store.move_document(doc.hash, "a", "b"))

        assert run(store.read_manifest("b", doc.hash)) == doc
        assert run(store.read_binary("b", doc.hash)) == data
        assert run(store.read_derived_text("b", doc.hash)) == "summary text"
        assert not run(store.has_manifest("a", doc.hash))
        assert not run(store.has_binary("a", doc.hash))

    def test_move_without_summary(self, store):
        run(store.create_topic("a"))
        run(store.create_topic("b"))
        doc, _ = add_document(store, "a", "one")

        run(store.move_document(doc.hash, "a", "b"))
        assert not run(store.has_derived_text("b", doc.hash))

    def test_move_never_creates_topics(self, store, data_dir):
        run(store.create_topic("a"))
        doc, _ = add_document(store, "a", "one")

        with pytest.raises(DestinationNotFoundError):
            run(store.move_document(doc.hash, "a", "missing"))
        assert not (data_dir / "missing").exists()
        assert run(store.has_manifest("a", doc.hash))

    def test_failed_manifest_move_rolls_back(self, store, monkeypatch):
        run(store.create_topic("a"))
        run(store.create_topic("b"))
        doc, data = add_document(store, "a", "one")

        real_replace = os.replace

        def failing_replace(src, dst):
            if str(dst).endswith(".json"):
                raise OSError("disk full")
            return real_replace(src, dst)

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(InconsistencyError):
            run(store.move_document(doc.hash, "a", "b"))

        monkeypatch.setattr(os, "replace", real_replace)
        assert run(store.read_binary("a", doc.hash)) == data
        assert run(store.has_manifest("a", doc.hash))
        assert not run(store.has_binary("b", doc.hash))
