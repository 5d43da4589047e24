"""Review step: load the draft conversation, accept edited answers.

Accepting finalizes the user's draft messages, runs the extractor over the
final answers and writes the structured fields to the user record.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from .content_filter import filter_response
from .extractor import extract_profile
from .policy import paired_answers, question_count
from .schemas import TOPIC_ONBOARD, Conversation, Message
from .storage import ConversationStore

logger = logging.getLogger(__name__)


class ReviewError(Exception):
    """Nothing to review, or the edits don't line up with the conversation."""

    def __init__(self, message: str, status_code: int = 404) -> None:
        super().__init__(message)
        self.status_code = status_code


def _load(store: ConversationStore, user_id: str) -> tuple[Conversation, List[Message]]:
    conversation = store.get_conversation(user_id, TOPIC_ONBOARD)
    if conversation is None:
        raise ReviewError("No onboarding conversation found")
    messages = store.fetch_messages(conversation)
    if not messages:
        raise ReviewError("No messages found. Please complete onboarding.")
    return conversation, messages


def load_review(store: ConversationStore, user_id: str) -> Dict[str, Any]:
    conversation, messages = _load(store, user_id)
    return {
        "conversation_id": conversation.conversation_id,
        "messages": [
            {"sender_type": m.sender_type, "message": m.message, "is_draft": m.is_draft}
            for m in messages
        ],
        "question_count": question_count(messages),
    }


def accept_review(store: ConversationStore, user_id: str, answers: Sequence[str]) -> Dict[str, Any]:
    """Finalize ``answers`` (one per stored user answer, in order) and update the profile.

    Returns the user's profile fields after the update.
    """
    conversation, messages = _load(store, user_id)
    originals, prompts = paired_answers(messages)
    if len(answers) != len(originals):
        raise ReviewError(
            f"Expected {len(originals)} answers, got {len(answers)}",
            status_code=400,
        )

    final_answers = [filter_response(a.strip()) for a in answers]
    store.finalize_messages(conversation, list(zip(originals, final_answers)))

    extracted = extract_profile(final_answers, prompts)
    # Fields the answers say nothing about keep their stored values.
    fields: Dict[str, Any] = {}
    if extracted.grade_level is not None:
        fields["grade_level"] = extracted.grade_level
    if extracted.interests:
        fields["interests"] = list(extracted.interests)
    if extracted.subject_comfort:
        fields["subject_comfort"] = dict(extracted.subject_comfort)
    # onboarded only ever flips to True here.
    if extracted.has_minimum:
        fields["onboarded"] = True

    profile = store.update_user_profile(user_id, fields)
    logger.info(
        f"Review accepted for {user_id}: grade={extracted.grade_level} "
        f"interests={extracted.interests} onboarded={profile.get('onboarded')}"
    )
    return profile
