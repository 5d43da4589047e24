from onboardbot.graph import build_turn_graph, run_turn
from onboardbot.onboarding.prompts import (
    CLARIFY_PROMPT,
    DEFAULT_QUESTIONS,
    FILTER_WARNING,
    MAX_QUESTIONS,
    OPENING_QUESTION,
    REDIRECT_PROMPT,
    SUMMARY_PREFIX,
)
from onboardbot.onboarding.schemas import SENDER_ASSISTANT, SENDER_USER


def _messages(store, user_id="u1"):
    return store.fetch_messages(store.get_or_create_conversation(user_id))


def test_first_turn_returns_opening_without_calling_model(store, graph, fake_llm):
    result = run_turn(graph, "u1")

    assert result == {"message": OPENING_QUESTION, "is_complete": False}
    assert fake_llm.calls == []
    history = _messages(store)
    assert [(m.sender_type, m.message) for m in history] == [(SENDER_ASSISTANT, OPENING_QUESTION)]
    assert history[0].message_type == "onboard_opening"


def test_turn_without_response_resumes_without_storing(store, graph, fake_llm):
    run_turn(graph, "u1")

    result = run_turn(graph, "u1")

    assert result == {"message": OPENING_QUESTION, "is_complete": False}
    assert len(_messages(store)) == 1
    assert fake_llm.calls == []


def test_turn_appends_one_user_and_one_assistant_message(store, graph, fake_llm):
    run_turn(graph, "u1")
    result = run_turn(graph, "u1", "I love science")

    assert result["message"] == "What else do you enjoy? 😊"
    assert not result["is_complete"]
    history = _messages(store)
    assert [m.sender_type for m in history] == [SENDER_ASSISTANT, SENDER_USER, SENDER_ASSISTANT]

    sent = fake_llm.calls[0]["messages"]
    assert sent[0]["role"] == "system"
    assert "grade" in sent[0]["content"]
    assert sent[-1] == {"role": "user", "content": "I love science"}


def test_blocked_answer_is_stored_as_warning_and_redirected(store, graph):
    run_turn(graph, "u1")
    result = run_turn(graph, "u1", "this is damn hard")

    assert result["message"] == REDIRECT_PROMPT
    user_msgs = [m.message for m in _messages(store) if m.sender_type == SENDER_USER]
    assert user_msgs == [FILTER_WARNING]


def test_vague_answer_is_clarified(graph):
    run_turn(graph, "u1")
    assert run_turn(graph, "u1", "idk")["message"] == CLARIFY_PROMPT


def test_generation_failure_falls_back_to_default_question(store, make_agent):
    graph = build_turn_graph(store, make_agent([RuntimeError("model overloaded")]))
    run_turn(graph, "u1")

    result = run_turn(graph, "u1", "I like drawing")

    assert result["message"] == DEFAULT_QUESTIONS["grade"]
    assert not result["is_complete"]


def test_empty_generation_falls_back(store, make_agent):
    graph = build_turn_graph(store, make_agent(["   "]))
    run_turn(graph, "u1")
    assert run_turn(graph, "u1", "I like drawing")["message"] == DEFAULT_QUESTIONS["grade"]


def test_summary_as_soon_as_minimum_fields_known(store, make_agent):
    graph = build_turn_graph(store, make_agent(["You're a 10th grader who loves science! 😊"]))
    run_turn(graph, "u1")

    result = run_turn(graph, "u1", "I like science, I'm in 10th grade, and I'm a 4 in Science")

    assert result["is_complete"]
    assert result["message"].startswith(SUMMARY_PREFIX)
    assert _messages(store)[-1].message_type == "onboard_summary"


def test_question_cap_is_never_exceeded(store, graph):
    run_turn(graph, "u1")
    results = [run_turn(graph, "u1", "idk") for _ in range(10)]

    assistant = [m for m in _messages(store) if m.sender_type == SENDER_ASSISTANT]
    assert len(assistant) == MAX_QUESTIONS
    assert results[MAX_QUESTIONS - 2]["is_complete"]
    assert results[-1]["is_complete"]
    assert results[-1]["message"].startswith(SUMMARY_PREFIX)


def test_completed_conversation_is_not_extended(store, make_agent):
    graph = build_turn_graph(store, make_agent(["You're a 10th grader who loves science! 😊"]))
    run_turn(graph, "u1")
    run_turn(graph, "u1", "I like science, I'm in 10th grade, and I'm a 4 in Science")
    before = len(_messages(store))

    result = run_turn(graph, "u1", "anything else?")

    assert result["is_complete"]
    assert len(_messages(store)) == before


def test_full_conversation_reaches_summary(store, make_agent):
    graph = build_turn_graph(
        store,
        make_agent(
            [
                "Cool! What grade are you in? 🚀",
                "How confident are you in Math? 1-5 😊",
                "You're a 9th grader who loves math! 😊",
            ]
        ),
    )
    run_turn(graph, "u1")
    assert run_turn(graph, "u1", "I like puzzles")["message"].startswith("Cool!")
    assert "Math" in run_turn(graph, "u1", "9th")["message"]
    final = run_turn(graph, "u1", "4")

    assert final["is_complete"]
    assert final["message"] == "You're a 9th grader who loves math! 😊"
