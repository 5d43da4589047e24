"""Blocklist moderation for student answers."""

from __future__ import annotations

import re

from .prompts import FILTER_WARNING

BLOCKED_TERMS = (
    "damn",
    "hell",
    "adult",
    "fuck",
    "shit",
    "crap",
    "bitch",
    "porn",
    "drugs",
    "weed",
    "alcohol",
)

# Harmless words that happen to contain a blocked term.
ALLOWED_WORDS = frozenset(
    {
        "hello",
        "hellos",
        "shell",
        "shells",
        "seashell",
        "seashells",
        "eggshell",
        "michelle",
        "othello",
        "hellenic",
        "scrap",
        "scraps",
        "scrape",
        "scraper",
        "scrapbook",
        "scrapbooking",
        "skyscraper",
        "skyscrapers",
        "tweed",
        "drugstore",
    }
)

_WORD_RE = re.compile(r"[a-z]+")


def is_blocked(text: str) -> bool:
    for word in _WORD_RE.findall((text or "").lower()):
        if word in ALLOWED_WORDS or word.startswith("hello"):
            continue
        if any(term in word for term in BLOCKED_TERMS):
            return True
    return False


def filter_response(text: str) -> str:
    """Return ``text`` unchanged, or the fixed warning if it contains a blocked term."""
    return FILTER_WARNING if is_blocked(text) else text
