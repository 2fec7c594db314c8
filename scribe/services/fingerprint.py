import hashlib

FIELD_SEPARATOR = "|"


def fingerprint(meeting_id: str, speaker: str, content: str, timestamp: str) -> str:
    """SHA-256 hex digest identifying a fragment by its normalized content.

    Two fragments with the same digest are the same utterance; the store keeps
    the first and reports the second as a duplicate.
    """
    joined = FIELD_SEPARATOR.join((meeting_id, speaker, content, timestamp))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()
