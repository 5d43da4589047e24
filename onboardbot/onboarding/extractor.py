"""Keyword/regex heuristics turning free-text answers into profile fields.

Best effort only: a single answer mentioning several subjects attributes
its rating to all of them.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence

from .schemas import ExtractedProfile

# Tag -> keywords. The first three are the core subjects; the rest are
# derived tags for hobby answers.
INTEREST_KEYWORDS: Dict[str, Sequence[str]] = {
    "Math": ("math", "maths", "algebra", "geometry", "calculus", "numbers", "puzzle", "puzzles"),
    "Science": ("science", "biology", "chemistry", "physics", "experiment", "experiments", "space"),
    "English": ("english", "reading", "writing", "books", "poetry", "literature", "stories"),
    "Arts": ("art", "drawing", "painting", "music", "guitar", "piano", "singing", "dance", "theater"),
    "Technology": ("coding", "programming", "computers", "robotics", "technology", "tech"),
    "Physical Education": ("gym", "sports", "soccer", "basketball", "football", "running", "swimming"),
    "Animal Care": ("animals", "pets", "dogs", "cats", "horses", "chicken", "chickens"),
    "History": ("history", "geography", "social studies"),
    "Other": ("gaming", "video games", "cooking", "chess", "photography", "hiking"),
}

# Subjects that can carry a 1-5 comfort rating.
SUBJECT_KEYWORDS: Dict[str, Sequence[str]] = {
    "math": ("math", "maths", "algebra", "geometry", "calculus"),
    "science": ("science", "biology", "chemistry", "physics"),
    "english": ("english", "reading", "writing", "literature"),
}

_ORDINAL_WORDS = {
    "ninth": "9th",
    "tenth": "10th",
    "eleventh": "11th",
    "twelfth": "12th",
    "freshman": "9th",
    "sophomore": "10th",
    "junior": "11th",
    "senior": "12th",
}

_GRADE_RE = re.compile(
    r"\b(9|10|11|12)(?:th)\b"
    r"|\bgrade\s*(9|10|11|12)\b"
    r"|\b(9|10|11|12)\s+grade\b"
    r"|^\s*(9|10|11|12)\s*[.!]?\s*$"
    r"|\b(" + "|".join(_ORDINAL_WORDS) + r")\b",
    re.IGNORECASE,
)

_RATING_RE = re.compile(r"(?<![\w.])([1-5])(?!\w|\.\d)(?:\s*/\s*5)?")


def _keyword_re(words: Iterable[str]) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b", re.IGNORECASE)


_INTEREST_RES = {tag: _keyword_re(words) for tag, words in INTEREST_KEYWORDS.items()}
_SUBJECT_RES = {subject: _keyword_re(words) for subject, words in SUBJECT_KEYWORDS.items()}


def find_grade(text: str) -> Optional[str]:
    """Return the first grade token in ``text`` normalized to ``Nth``."""
    m = _GRADE_RE.search(text or "")
    if not m:
        return None
    number = next((g for g in m.groups()[:4] if g), None)
    if number:
        return f"{number}th"
    return _ORDINAL_WORDS[m.group(5).lower()]


def find_interests(text: str) -> List[str]:
    return [tag for tag, rx in _INTEREST_RES.items() if rx.search(text or "")]


def find_subjects(text: str) -> List[str]:
    return [subject for subject, rx in _SUBJECT_RES.items() if rx.search(text or "")]


def find_rating(text: str) -> Optional[int]:
    m = _RATING_RE.search(text or "")
    return int(m.group(1)) if m else None


def extract_profile(
    responses: Sequence[str],
    prompts: Optional[Sequence[Optional[str]]] = None,
) -> ExtractedProfile:
    """Derive grade level, interests and subject comfort from user answers.

    ``prompts`` optionally pairs each response with the assistant question
    that preceded it; a bare rating ("4") is then attributed to the
    subject(s) that question named.
    """
    profile = ExtractedProfile()

    for i, response in enumerate(responses):
        if profile.grade_level is None:
            profile.grade_level = find_grade(response)

        for tag in find_interests(response):
            if tag not in profile.interests:
                profile.interests.append(tag)

        rating = find_rating(_strip_grade(response))
        if rating is None:
            continue
        subjects = find_subjects(response)
        if not subjects and prompts is not None and i < len(prompts):
            subjects = find_subjects(prompts[i] or "")
        for subject in subjects:
            profile.subject_comfort[subject] = rating

    return profile


def _strip_grade(text: str) -> str:
    # Keep "grade 9" style tokens from being read as ratings.
    return _GRADE_RE.sub(" ", text or "")


def has_keywords(text: str, prompt: Optional[str] = None) -> bool:
    """True when an answer says anything the extractor understands."""
    if find_grade(text) or find_interests(text):
        return True
    if find_rating(_strip_grade(text)) is None:
        return False
    return bool(find_subjects(text) or (prompt and find_subjects(prompt)))
