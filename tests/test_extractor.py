import pytest

from onboardbot.onboarding.extractor import extract_profile, find_grade, find_rating, has_keywords


def test_combined_answer_yields_all_fields():
    profile = extract_profile(["I like science, I'm in 10th grade, and I'm a 4 in Science"])

    assert profile.grade_level == "10th"
    assert "Science" in profile.interests
    assert profile.subject_comfort["science"] == 4
    assert profile.has_minimum


@pytest.mark.parametrize(
    "text,expected",
    [
        ("I'm in 9th grade", "9th"),
        ("grade 11", "11th"),
        ("12", "12th"),
        ("I'm a junior", "11th"),
        ("tenth", "10th"),
        ("I like math", None),
    ],
)
def test_grade_normalization(text, expected):
    assert find_grade(text) == expected


def test_first_grade_match_wins():
    profile = extract_profile(["I'm in 9th grade", "my brother is in 12th"])
    assert profile.grade_level == "9th"


def test_interests_union_across_responses():
    profile = extract_profile(["I love math and reading", "also soccer", "and puzzles"])
    assert profile.interests == ["Math", "English", "Physical Education"]


def test_hobby_answer_gets_derived_tag():
    assert extract_profile(["I play guitar"]).interests == ["Arts"]


def test_later_rating_overwrites_earlier():
    profile = extract_profile(["math is a 2 for me", "actually math is a 5"])
    assert profile.subject_comfort == {"math": 5}


def test_multi_subject_answer_rates_every_subject():
    profile = extract_profile(["math and science are both 3"])
    assert profile.subject_comfort == {"math": 3, "science": 3}


def test_bare_rating_uses_preceding_prompt_subject():
    profile = extract_profile(
        ["4"],
        prompts=["How comfortable are you with Math? Rate 1-5, 5 is super confident! 😊"],
    )
    assert profile.subject_comfort == {"math": 4}


def test_bare_rating_without_context_is_ignored():
    assert extract_profile(["4"]).subject_comfort == {}


def test_grade_numbers_are_not_ratings():
    assert find_rating("10th grade") is None
    assert find_rating("about 3.5") is None
    assert find_rating("I'd say 4/5") == 4


def test_vague_answers_have_no_keywords():
    assert not has_keywords("idk")
    assert not has_keywords("hello")
    assert has_keywords("3", prompt="How confident are you in Science? 1-5 😊")
