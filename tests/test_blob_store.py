import os
import threading

import pytest

from scribe.services.meeting_store import StoreError


def test_put_get_roundtrip_with_metadata(blobs):
    blobs.put("meetings/2025-03-14/m1/summary.md", "# Summary\n", metadata={"meeting_id": "m1"})
    blob = blobs.get("meetings/2025-03-14/m1/summary.md")

    assert blob.content == "# Summary\n"
    assert blob.content_type == "text/markdown; charset=utf-8"
    assert blob.metadata == {"meeting_id": "m1"}
    assert blob.uploaded_at
    assert blobs.exists("meetings/2025-03-14/m1/summary.md")


def test_put_overwrites(blobs):
    blobs.put("a/b.md", "one")
    blobs.put("a/b.md", "two")
    assert blobs.get("a/b.md").content == "two"


def test_missing_blob(blobs):
    assert blobs.get("nothing/here.md") is None
    assert blobs.delete("nothing/here.md") is False


def test_list_by_prefix_hides_sidecars(blobs):
    blobs.put("meetings/2025-03-14/m1/transcription.md", "t")
    blobs.put("meetings/2025-03-14/m1/summary.md", "s")
    blobs.put("meetings/2025-03-14/m2/summary.md", "s")

    assert blobs.list("meetings/2025-03-14/m1/") == [
        "meetings/2025-03-14/m1/summary.md",
        "meetings/2025-03-14/m1/transcription.md",
    ]
    assert len(blobs.list()) == 3


def test_delete(blobs):
    blobs.put("x/y.md", "content")
    assert blobs.delete("x/y.md") is True
    assert blobs.get("x/y.md") is None
    assert blobs.list("x/") == []


@pytest.mark.parametrize("key", ["", "/etc/passwd", "../outside.md", "a/../../outside.md", "a/b.md.meta.json"])
def test_rejects_keys_outside_root(blobs, key):
    with pytest.raises(StoreError):
        blobs.put(key, "nope")


def test_concurrent_writes_to_one_key_last_writer_wins(blobs):
    key = "meetings/2025-03-14/m1/transcription.md"
    failures = []

    def writer(worker):
        for i in range(100):
            try:
                blobs.put(key, f"worker {worker} round {i}", metadata={"worker": worker})
            except StoreError as exc:
                failures.append(str(exc))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert failures == []
    blob = blobs.get(key)
    assert blob.content.startswith("worker ")
    assert blob.metadata["worker"] in range(4)
    assert blobs.list() == [key]


def test_put_leaves_no_temp_files(blobs, tmp_path):
    blobs.put("a/b.md", "one")
    blobs.put("a/b.md", "two")
    assert sorted(os.listdir(tmp_path / "blobs" / "a")) == ["b.md", "b.md.meta.json"]
