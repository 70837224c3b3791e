"""Text helpers for speech synthesis input."""

ELLIPSIS_MARKER = " …"
DEFAULT_MAX_INPUT_BYTES = 60_000


def clip_text(text: str, max_bytes: int = DEFAULT_MAX_INPUT_BYTES) -> str:
    """Bound ``text`` to ``max_bytes`` of UTF-8 without splitting a character.

    Text within budget is returned unchanged. Otherwise the text is cut at
    the last character boundary at or before the budget, trailing whitespace
    is trimmed and the ellipsis marker appended.
    """
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    # A partial trailing sequence is dropped by ignore, leaving whole characters
    clipped = encoded[:max(max_bytes, 0)].decode("utf-8", errors="ignore")
    return clipped.rstrip() + ELLIPSIS_MARKER
