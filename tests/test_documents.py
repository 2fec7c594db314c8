import json
from datetime import datetime, timezone

from conftest import fixed_clock, make_fragments

from scribe.services.documents import DocumentService, document_key, meeting_prefix


def test_prefix_uses_meeting_date_not_clock():
    later = lambda: datetime(2026, 1, 2, tzinfo=timezone.utc)
    meeting = {"id": "m1", "date": "2025-03-14"}
    assert meeting_prefix(meeting, later) == "meetings/2025-03-14/m1/"
    assert meeting_prefix(meeting, fixed_clock) == meeting_prefix(meeting, later)


def test_prefix_falls_back_to_created_at_then_clock():
    assert (
        meeting_prefix({"id": "m1", "date": "sometime", "created_at": "2025-02-01T10:00:00.000Z"}, fixed_clock)
        == "meetings/2025-02-01/m1/"
    )
    assert meeting_prefix({"id": "m1"}, fixed_clock) == "meetings/2025-03-14/m1/"


def test_document_key_names():
    meeting = {"id": "m1", "date": "2025-03-14"}
    assert document_key(meeting, "transcript") == "meetings/2025-03-14/m1/transcription.md"
    assert document_key(meeting, "summary") == "meetings/2025-03-14/m1/summary.md"
    assert document_key(meeting, "json") == "meetings/2025-03-14/m1/transcription.json"


def test_regenerate_writes_three_documents(store, meeting, blobs):
    store.insert_fragments(make_fragments([("Alice", "Opening remarks"), ("Bob", "Numbers look fine")]))
    documents = DocumentService(store, blobs, clock=fixed_clock)

    keys = documents.regenerate("m1")

    assert set(keys) == {"transcript", "summary", "json"}
    assert blobs.list("meetings/2025-03-14/m1/") == sorted(keys.values())
    transcript = blobs.get(keys["transcript"])
    assert transcript.content.startswith("# Budget Review")
    assert "## Alice" in transcript.content
    assert transcript.metadata["fragment_count"] == 2
    assert transcript.metadata["meeting_id"] == "m1"

    exported = json.loads(blobs.get(keys["json"]).content)
    assert exported["meeting"]["id"] == "m1"
    assert [item["speaker"] for item in exported["transcriptions"]] == ["Alice", "Bob"]
    assert blobs.get(keys["json"]).content_type.startswith("application/json")


def test_regenerate_is_stable_across_days(store, meeting, blobs):
    store.insert_fragments(make_fragments([("Alice", "Opening remarks")]))
    first = DocumentService(store, blobs, clock=fixed_clock).regenerate("m1")
    later = DocumentService(store, blobs, clock=lambda: datetime(2025, 4, 1, tzinfo=timezone.utc))
    assert later.regenerate("m1") == first
    assert len(blobs.list()) == 3


def test_regenerate_unknown_meeting(store, blobs):
    assert DocumentService(store, blobs, clock=fixed_clock).regenerate("missing") is None
    assert blobs.list() == []


def test_read_outline_and_delete_all(store, meeting, blobs):
    documents = DocumentService(store, blobs, clock=fixed_clock)
    documents.regenerate("m1")
    key = documents.save_outline(meeting, "# Outline\n")

    assert key == "meetings/2025-03-14/m1/outline.md"
    assert documents.read(meeting, "outline") == "# Outline\n"
    assert "No transcript content yet." in documents.read(meeting, "transcript")
    assert len(documents.list_files(meeting)) == 4

    assert documents.delete_all(meeting) == 4
    assert documents.list_files(meeting) == []
    assert documents.read(meeting, "summary") is None


def test_delete_all_covers_prefixes_from_earlier_dates(store, meeting, blobs):
    store.insert_fragments(make_fragments([("Alice", "Opening remarks")]))
    documents = DocumentService(store, blobs, clock=fixed_clock)
    documents.regenerate("m1")

    moved = store.upsert_meeting({"id": "m1", "title": "Budget Review", "date": "2025-03-20"})
    documents.regenerate("m1")
    blobs.put("meetings/2025-03-20/m10/summary.md", "other meeting")

    assert len(documents.list_files(moved)) == 6
    assert documents.delete_all(moved) == 6
    assert blobs.list() == ["meetings/2025-03-20/m10/summary.md"]
