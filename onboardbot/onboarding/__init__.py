"""Onboarding conversation: policy, extractor, filter, storage and review.

Asks a bounded sequence of questions about interests, grade level and
subject comfort, then summarizes the student's profile.
"""

from .agent import OnboardingAgent
from .policy import DialogueState, decide

__all__ = ["OnboardingAgent", "DialogueState", "decide"]
