import pytest

from onboardbot.graph import run_turn
from onboardbot.onboarding.prompts import FILTER_WARNING
from onboardbot.onboarding.review import ReviewError, accept_review, load_review
from onboardbot.onboarding.schemas import SENDER_USER


def _answer(graph, *answers):
    run_turn(graph, "u1")
    for a in answers:
        run_turn(graph, "u1", a)


def test_accept_finalizes_answers(store, graph):
    _answer(graph, "I love art")

    accept_review(store, "u1", ["I love art and math"])

    conv = store.get_conversation("u1")
    user_msgs = [m for m in store.fetch_messages(conv) if m.sender_type == SENDER_USER]
    assert [(m.message, m.is_draft) for m in user_msgs] == [("I love art and math", False)]


def test_incomplete_profile_is_not_onboarded(store, graph):
    _answer(graph, "I love art")

    profile = accept_review(store, "u1", ["I love art"])

    assert profile["interests"] == ["Arts"]
    assert profile["grade_level"] is None
    assert profile["onboarded"] is False


def test_second_review_replaces_final_answers(store, graph):
    _answer(graph, "I love art")
    accept_review(store, "u1", ["I love art"])

    profile = accept_review(store, "u1", ["I love math"])

    conv = store.get_conversation("u1")
    assert [m.message for m in store.fetch_messages(conv) if m.sender_type == SENDER_USER] == ["I love math"]
    assert profile["interests"] == ["Math"]


def test_review_keeps_fields_the_answers_do_not_mention(store, graph):
    _answer(graph, "I love art, 10th grade")
    accept_review(store, "u1", ["I love art, 10th grade"])

    profile = accept_review(store, "u1", ["I love art"])

    assert profile["grade_level"] == "10th"
    assert profile["interests"] == ["Arts"]


def test_onboarded_is_never_unset(store, graph):
    _answer(graph, "I love art")
    store.update_user_profile("u1", {"onboarded": True})

    profile = accept_review(store, "u1", ["idk"])

    assert profile["onboarded"] is True


def test_edited_answers_are_filtered(store, graph):
    _answer(graph, "I love art")

    accept_review(store, "u1", ["damn art"])

    conv = store.get_conversation("u1")
    assert [m.message for m in store.fetch_messages(conv) if m.sender_type == SENDER_USER] == [FILTER_WARNING]


def test_bare_rating_is_attributed_during_review(store, make_agent):
    from onboardbot.graph import build_turn_graph

    graph = build_turn_graph(store, make_agent(["What grade are you in? 🚀", "How comfortable are you with Science? 1-5"]))
    _answer(graph, "science", "11th", "5")

    profile = accept_review(store, "u1", ["science", "11th", "5"])

    assert profile["subject_comfort"] == {"science": 5}
    assert profile["onboarded"] is True


def test_load_review_requires_conversation(store):
    with pytest.raises(ReviewError) as err:
        load_review(store, "u1")
    assert err.value.status_code == 404


def test_load_review_lists_messages(store, graph):
    _answer(graph, "I love art")

    review = load_review(store, "u1")

    assert review["question_count"] == 2
    assert review["messages"][1] == {"sender_type": "user", "message": "I love art", "is_draft": True}
