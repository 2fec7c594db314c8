"""Speaker name clean-up applied before fingerprinting."""

import re

MAX_SPEAKER_LENGTH = 50

_WHITESPACE_RE = re.compile(r"\s+")
# Keep word characters, whitespace and CJK unified ideographs.
_DISALLOWED_RE = re.compile(r"[^\w\s\u4e00-\u9fff]")


def normalize_speaker(raw: str) -> str:
    """Return a display-safe speaker name.

    Trims, collapses whitespace runs, strips punctuation/symbols and caps the
    result at 50 characters. Never raises for string input; ``""`` stays ``""``.
    """
    name = raw.strip()
    name = _WHITESPACE_RE.sub(" ", name)
    name = _DISALLOWED_RE.sub("", name)
    return name[:MAX_SPEAKER_LENGTH]
