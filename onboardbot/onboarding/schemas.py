"""Records and API payloads for the onboarding conversation.

Storage records are plain dataclasses so every backend (in-memory,
Supabase rows) can build them; HTTP payloads are pydantic models so
FastAPI validates them for us.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .prompts import MAX_QUESTIONS

TOPIC_ONBOARD = "onboard"
MESSAGE_TOPIC = "onboarding"

SENDER_USER = "user"
SENDER_ASSISTANT = "assistant"

MAX_RESPONSE_CHARS = 250

MESSAGE_TYPE_ANSWER = "onboard_answer"


def assistant_message_type(action: str) -> str:
    """Tag for an assistant message, e.g. ``onboard_question``."""
    return f"onboard_{action}"


PROFILE_TEMPLATE: dict = {
    "grade_level": None,  # "9th" | "10th" | "11th" | "12th"
    "interests": [],  # ["Math", "Science", "English", "Arts", ...]
    "subject_comfort": {},  # {"math": 1-5, "science": 1-5, "english": 1-5}
    "onboarded": False,
}


@dataclass(frozen=True)
class Conversation:
    conversation_id: str
    user_id: str
    topic_type: str = TOPIC_ONBOARD


@dataclass
class Message:
    conversation_id: str
    sender_type: str
    message: str
    message_type: str = MESSAGE_TYPE_ANSWER
    is_draft: bool = True
    topic: str = MESSAGE_TOPIC
    user_id: Optional[str] = None
    message_date: Optional[datetime] = None
    message_id: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "user_id": self.user_id,
            "sender_type": self.sender_type,
            "message": self.message,
            "message_type": self.message_type,
            "is_draft": self.is_draft,
            "topic": self.topic,
            "message_date": self.message_date.isoformat() if self.message_date else None,
        }


@dataclass
class ExtractedProfile:
    grade_level: Optional[str] = None
    interests: List[str] = field(default_factory=list)
    subject_comfort: Dict[str, int] = field(default_factory=dict)

    @property
    def has_minimum(self) -> bool:
        """Grade, at least one interest and at least one comfort rating."""
        return bool(self.grade_level and self.interests and self.subject_comfort)


# --- HTTP payloads ---


class TurnRequest(BaseModel):
    user_id: str
    response: Optional[str] = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _check_user_id(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Invalid user_id")
        return v

    @field_validator("response", mode="before")
    @classmethod
    def _check_response(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if not isinstance(v, str) or len(v) > MAX_RESPONSE_CHARS or not v.strip():
            raise ValueError("Invalid response")
        return v


class TurnResponse(BaseModel):
    message: str
    is_complete: bool


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    is_complete: Optional[bool] = None


class ReviewMessage(BaseModel):
    sender_type: str
    message: str
    is_draft: bool


class ReviewPayload(BaseModel):
    conversation_id: str
    messages: List[ReviewMessage]
    question_count: int = Field(..., description=f"Assistant messages so far (max {MAX_QUESTIONS})")


class ReviewRequest(BaseModel):
    user_id: str
    answers: List[str] = Field(..., description="Edited user answers, in conversation order")

    @field_validator("user_id", mode="before")
    @classmethod
    def _check_user_id(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Invalid user_id")
        return v

    @field_validator("answers")
    @classmethod
    def _check_answers(cls, v: List[str]) -> List[str]:
        for answer in v:
            if len(answer) > MAX_RESPONSE_CHARS or not answer.strip():
                raise ValueError("Invalid answers")
        return v


class ProfileResponse(BaseModel):
    grade_level: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    subject_comfort: Dict[str, int] = Field(default_factory=dict)
    onboarded: bool = False
