import re

import pytest

from webflow_payload.services.slugs import normalize_key, sanitize_slug

SLUG_CASES = [
    ("Hello World", "hello-world"),
    ("  Ünïcode & Friends!  ", "n-code-friends"),
    ("already-clean", "already-clean"),
    ("--Lots---of___Hyphens--", "lots-of-hyphens"),
    ("Project_2024.v2", "project-2024-v2"),
    ("ABC123", "abc123"),
]

EDGE_INPUTS = [
    "",
    "   ",
    "\t\n",
    "!!!",
    "---",
    "-_-.-",
    "日本語",
    "Ünïcödé Name",
    "Café Crème",
    "  Some Title: With/Slashes ",
    "Mixed CASE with émojis 🚀 and    spaces",
    "a",
    "-a-",
    "1 2 3",
]

ALL_INPUTS = [raw for raw, _ in SLUG_CASES] + EDGE_INPUTS

SLUG_SHAPE = re.compile(r"[a-z0-9]+(-[a-z0-9]+)*|")


@pytest.mark.parametrize(("raw", "expected"), SLUG_CASES)
def test_sanitize_slug(raw, expected):
    assert sanitize_slug(raw) == expected


@pytest.mark.parametrize("raw", ALL_INPUTS)
def test_sanitize_slug_is_idempotent(raw):
    once = sanitize_slug(raw)
    assert sanitize_slug(once) == once


@pytest.mark.parametrize("raw", ALL_INPUTS)
def test_sanitize_slug_has_no_stray_hyphens(raw):
    assert SLUG_SHAPE.fullmatch(sanitize_slug(raw))


@pytest.mark.parametrize("raw", [None, "", "   ", "\t\n", "!!!", "---", "-_-.-", "日本語"])
def test_sanitize_slug_empty_results(raw):
    assert sanitize_slug(raw) == ""


def test_normalize_key():
    assert normalize_key("  Alice ") == "alice"
    assert normalize_key(None) == ""
    assert normalize_key(42) == "42"
