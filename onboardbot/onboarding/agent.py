"""Onboarding agent: turns a policy decision into the next assistant message.

The core entrypoint is :class:`OnboardingAgent`, which:
- Maintains no internal state (history is passed in on every call).
- Calls an OpenAI-compatible chat completions endpoint only for the
  actions that need generated text (questions and the summary).
- Never raises on generation problems; it logs and falls back to a fixed
  text so the conversation can continue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .client import DEFAULT_MAX_TOKENS, DEFAULT_MODEL, DEFAULT_TEMPERATURE, get_openai_client
from .policy import TurnDecision, directive, finalize_output, fallback_text
from .prompts import SYSTEM_INSTRUCTIONS
from .schemas import SENDER_ASSISTANT, Message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OnboardingConfig:
    """Generation parameters for onboarding turns."""

    max_output_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE


def _extract_first_message_text(resp: Any) -> str:
    """Pull the first choice's message text, tolerating objects or dicts."""
    choices = getattr(resp, "choices", None)
    if choices is None and isinstance(resp, dict):
        choices = resp.get("choices")

    for choice in choices or []:
        message = choice.get("message") if isinstance(choice, dict) else getattr(choice, "message", None)
        if message is None:
            continue
        content = message.get("content") if isinstance(message, dict) else getattr(message, "content", None)
        if isinstance(content, str) and content.strip():
            return content.strip()

    return ""


def build_chat_messages(
    history: Sequence[Message],
    response: Optional[str],
    decision: TurnDecision,
) -> List[Dict[str, str]]:
    """Role-tagged message list: instructions, stored history, the new answer."""
    messages = [
        {
            "role": "system",
            "content": f"{SYSTEM_INSTRUCTIONS}\n\nNext step: {directive(decision)}",
        }
    ]
    for m in history:
        role = "assistant" if m.sender_type == SENDER_ASSISTANT else "user"
        messages.append({"role": role, "content": m.message})
    if response is not None:
        messages.append({"role": "user", "content": response})
    return messages


class OnboardingAgent:
    """Thin wrapper around chat completions for onboarding turns."""

    def __init__(
        self,
        model: Optional[str] = None,
        client: Any = None,
        config: Optional[OnboardingConfig] = None,
    ) -> None:
        self.model = model or DEFAULT_MODEL
        self.client = client or get_openai_client()
        self.config = config or OnboardingConfig()

    def next_message(
        self,
        history: Sequence[Message],
        response: Optional[str],
        decision: TurnDecision,
    ) -> str:
        if not decision.needs_generation:
            return fallback_text(decision)

        messages = build_chat_messages(history, response, decision)
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.config.max_output_tokens,
                temperature=self.config.temperature,
            )
        except Exception as e:
            logger.warning(f"Generation failed ({decision.action.value}): {e}")
            return fallback_text(decision)

        raw = _extract_first_message_text(completion)
        if not raw:
            logger.warning(f"Generation returned empty content ({decision.action.value})")
        return finalize_output(decision, raw)
