"""Core package for the student onboarding bot.

This package exposes the onboarding agent and the turn graph that drives
a short intake conversation, plus the FastAPI app factory that serves it.
"""

from .onboarding.agent import OnboardingAgent  # re-export for convenience
from .graph import build_turn_graph, run_turn

__all__ = ["OnboardingAgent", "build_turn_graph", "run_turn"]
