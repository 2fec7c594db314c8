from datetime import datetime, timezone

import pytest

from scribe.services.blob_store import LocalBlobStore
from scribe.services.ingestion import batch_process
from scribe.services.meeting_store import MeetingStore

FIXED_NOW = datetime(2025, 3, 14, 9, 30, 0, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_NOW


def raw_fragment(content, speaker="Alice", meeting_id="m1", timestamp="2025-03-14T09:00:00Z", **extra):
    item = {"meeting_id": meeting_id, "speaker": speaker, "content": content, "timestamp": timestamp}
    item.update(extra)
    return item


def make_fragments(pairs, meeting_id="m1"):
    """Build processed fragments from (speaker, content) pairs, one minute apart."""
    raws = [
        raw_fragment(content, speaker=speaker, meeting_id=meeting_id, timestamp=f"2025-03-14T09:{i:02d}:00Z")
        for i, (speaker, content) in enumerate(pairs)
    ]
    result = batch_process(raws)
    assert not result.errors
    return result.processed


@pytest.fixture
def store(tmp_path):
    meeting_store = MeetingStore(str(tmp_path / "scribe.sqlite3"))
    meeting_store.initialize()
    return meeting_store


@pytest.fixture
def meeting(store):
    return store.upsert_meeting({"id": "m1", "title": "Budget Review", "date": "2025-03-14"})


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"))
