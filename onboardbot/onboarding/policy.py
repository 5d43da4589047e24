"""Dialogue policy for the onboarding conversation.

The policy is a pure function of the stored history plus the (already
filtered) new answer. It never talks to the model or the database; the
turn graph does that around it.

States::

    GREETING -> QUESTIONING(count) -> SUMMARIZING -> COMPLETE

A conversation is COMPLETE once a summary has been stored or the
assistant has used up all ``MAX_QUESTIONS`` messages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .extractor import extract_profile, has_keywords
from .prompts import (
    CLARIFY_PROMPT,
    DEFAULT_QUESTIONS,
    FILTER_WARNING,
    MAX_QUESTIONS,
    MAX_WORDS,
    OPENING_QUESTION,
    QUESTION_DIRECTIVES,
    REDIRECT_PROMPT,
    SUMMARY_DIRECTIVE,
    SUMMARY_PREFIX,
)
from .schemas import SENDER_ASSISTANT, SENDER_USER, ExtractedProfile, Message, assistant_message_type

CATEGORY_ORDER = ("interest", "grade", "comfort")
CORE_SUBJECTS = ("math", "science", "english")


class DialogueState(str, Enum):
    GREETING = "greeting"
    QUESTIONING = "questioning"
    SUMMARIZING = "summarizing"
    COMPLETE = "complete"


class Action(str, Enum):
    OPENING = "opening"
    QUESTION = "question"
    CLARIFY = "clarify"
    REDIRECT = "redirect"
    SUMMARY = "summary"
    # Nothing new to say: repeat the last assistant message, store nothing.
    RESUME = "resume"


@dataclass(frozen=True)
class TurnDecision:
    state: DialogueState
    action: Action
    question_count: int
    profile: ExtractedProfile = field(default_factory=ExtractedProfile)
    category: Optional[str] = None
    subject: Optional[str] = None
    text: Optional[str] = None

    @property
    def needs_generation(self) -> bool:
        return self.action in (Action.QUESTION, Action.SUMMARY)

    @property
    def appends(self) -> bool:
        return self.action is not Action.RESUME

    @property
    def is_complete(self) -> bool:
        return self.state in (DialogueState.SUMMARIZING, DialogueState.COMPLETE)

    @property
    def message_type(self) -> str:
        return assistant_message_type(self.action.value)


def question_count(history: Sequence[Message]) -> int:
    return sum(1 for m in history if m.sender_type == SENDER_ASSISTANT)


def _last_assistant(history: Sequence[Message]) -> Optional[Message]:
    for m in reversed(history):
        if m.sender_type == SENDER_ASSISTANT:
            return m
    return None


def current_state(history: Sequence[Message]) -> DialogueState:
    count = question_count(history)
    if count == 0:
        return DialogueState.GREETING
    last = _last_assistant(history)
    if count >= MAX_QUESTIONS or (last is not None and last.message_type == assistant_message_type(Action.SUMMARY.value)):
        return DialogueState.COMPLETE
    return DialogueState.QUESTIONING


def paired_answers(history: Sequence[Message]) -> Tuple[List[str], List[Optional[str]]]:
    """User answers in order, each with the assistant message before it."""
    answers: List[str] = []
    prompts: List[Optional[str]] = []
    prompt: Optional[str] = None
    for m in history:
        if m.sender_type == SENDER_ASSISTANT:
            prompt = m.message
        elif m.sender_type == SENDER_USER:
            answers.append(m.message)
            prompts.append(prompt)
    return answers, prompts


def next_category(profile: ExtractedProfile) -> Tuple[str, Optional[str]]:
    """First unsatisfied category, plus the subject to rate for comfort."""
    if not profile.interests:
        return "interest", None
    if not profile.grade_level:
        return "grade", None
    liked = [tag.lower() for tag in profile.interests if tag.lower() in CORE_SUBJECTS]
    for subject in liked + [s for s in CORE_SUBJECTS if s not in liked]:
        if subject not in profile.subject_comfort:
            return "comfort", subject
    return "comfort", liked[0] if liked else CORE_SUBJECTS[0]


def decide(history: Sequence[Message], response: Optional[str] = None) -> TurnDecision:
    """Pick the next assistant action for a conversation."""
    count = question_count(history)
    state = current_state(history)
    last = _last_assistant(history)

    if state is DialogueState.COMPLETE:
        answers, prompts = paired_answers(history)
        return TurnDecision(
            state=state,
            action=Action.RESUME,
            question_count=count,
            profile=extract_profile(answers, prompts),
            text=last.message if last else None,
        )

    if response is None:
        if state is DialogueState.GREETING:
            return TurnDecision(state=state, action=Action.OPENING, question_count=count, text=OPENING_QUESTION)
        return TurnDecision(state=state, action=Action.RESUME, question_count=count, text=last.message if last else None)

    last_prompt = last.message if last else None
    answers, prompts = paired_answers(history)
    answers.append(response)
    prompts.append(last_prompt)
    profile = extract_profile(answers, prompts)

    # The message about to be written would be the last one allowed.
    if count + 1 >= MAX_QUESTIONS:
        return TurnDecision(state=DialogueState.SUMMARIZING, action=Action.SUMMARY, question_count=count, profile=profile)

    if response == FILTER_WARNING:
        return TurnDecision(
            state=DialogueState.QUESTIONING, action=Action.REDIRECT, question_count=count, profile=profile, text=REDIRECT_PROMPT
        )

    if not has_keywords(response, last_prompt):
        return TurnDecision(
            state=DialogueState.QUESTIONING, action=Action.CLARIFY, question_count=count, profile=profile, text=CLARIFY_PROMPT
        )

    if profile.has_minimum:
        return TurnDecision(state=DialogueState.SUMMARIZING, action=Action.SUMMARY, question_count=count, profile=profile)

    category, subject = next_category(profile)
    return TurnDecision(
        state=DialogueState.QUESTIONING,
        action=Action.QUESTION,
        question_count=count,
        profile=profile,
        category=category,
        subject=subject,
    )


def directive(decision: TurnDecision) -> str:
    """Instruction appended to the system prompt for a generated turn."""
    if decision.action is Action.SUMMARY:
        return SUMMARY_DIRECTIVE.format(known=describe_profile(decision.profile))
    template = QUESTION_DIRECTIVES[decision.category or "interest"]
    return template.format(subject=(decision.subject or "math").title())


def describe_profile(profile: ExtractedProfile) -> str:
    parts = [
        f"grade={profile.grade_level or 'unknown'}",
        f"interests={', '.join(profile.interests) or 'unknown'}",
    ]
    if profile.subject_comfort:
        parts.append("comfort=" + ", ".join(f"{s} {v}/5" for s, v in profile.subject_comfort.items()))
    return "; ".join(parts)


def build_summary(profile: ExtractedProfile) -> str:
    """Deterministic one-sentence summary, used when the model's is unusable."""
    who = f"{profile.grade_level} grader" if profile.grade_level else "student"
    if profile.interests:
        loves = " and ".join(tag.lower() if tag.lower() in CORE_SUBJECTS else tag for tag in profile.interests[:3])
        sentence = f"{SUMMARY_PREFIX} {who} who loves {loves}"
    else:
        sentence = f"{SUMMARY_PREFIX} {who} who is still exploring what you love"
    if profile.subject_comfort:
        subject, score = max(profile.subject_comfort.items(), key=lambda kv: kv[1])
        label = "English" if subject == "english" else subject
        sentence += f" and feels {'confident' if score >= 3 else 'ready to grow'} in {label}"
    return sentence + "! 😊"


def fallback_text(decision: TurnDecision) -> str:
    if decision.action is Action.SUMMARY:
        return build_summary(decision.profile)
    if decision.text:
        return decision.text
    template = DEFAULT_QUESTIONS[decision.category or "interest"]
    return template.format(subject=(decision.subject or "math").title())


def trim_words(text: str, limit: int = MAX_WORDS) -> str:
    words = text.split()
    if len(words) < limit:
        return text
    return " ".join(words[: limit - 1])


def finalize_output(decision: TurnDecision, raw: Optional[str]) -> str:
    """Validate generated text for ``decision``, falling back when unusable."""
    text = (raw or "").strip().strip('"').strip()
    # Normalize curly apostrophes so the summary marker compares reliably.
    text = text.replace("’", "'")
    if not text:
        return fallback_text(decision)

    is_summary_text = text.startswith(SUMMARY_PREFIX)
    if decision.action is Action.SUMMARY and not is_summary_text:
        return fallback_text(decision)
    if decision.action is Action.QUESTION and is_summary_text:
        return fallback_text(decision)

    return trim_words(text)
