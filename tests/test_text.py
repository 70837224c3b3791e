"""Tests for speech input clipping."""

from voicerelay.relay.text import ELLIPSIS_MARKER, clip_text


def test_text_within_budget_is_unchanged():
    assert clip_text("hello", 5) == "hello"
    assert clip_text("", 0) == ""


def test_budget_counts_utf8_bytes():
    # "héllo" is 5 characters but 6 bytes
    assert clip_text("héllo", 6) == "héllo"
    assert clip_text("héllo", 5) == "héll" + ELLIPSIS_MARKER


def test_never_splits_multibyte_character():
    clipped = clip_text("héllo world", 7)
    assert clipped == "héllo" + ELLIPSIS_MARKER
    assert clipped.endswith(" …")

    # Budget falling inside "é" drops the whole character
    assert clip_text("héllo world", 2) == "h" + ELLIPSIS_MARKER


def test_trailing_whitespace_trimmed_before_marker():
    assert clip_text("one two   three", 10) == "one two" + ELLIPSIS_MARKER


def test_emoji_boundaries():
    text = "ok 🎉🎉🎉"
    # "ok " is 3 bytes; each emoji is 4
    assert clip_text(text, 9) == "ok 🎉" + ELLIPSIS_MARKER


def test_is_deterministic():
    text = "Ünïcödé " * 50
    assert clip_text(text, 100) == clip_text(text, 100)
