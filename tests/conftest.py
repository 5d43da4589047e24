from types import SimpleNamespace
from typing import Any, List, Optional

import pytest

from onboardbot.graph import build_turn_graph
from onboardbot.onboarding.agent import OnboardingAgent
from onboardbot.onboarding.storage import InMemoryConversationStore


class FakeCompletions:
    """Stands in for ``client.chat.completions``; replies from a script."""

    def __init__(self, replies: Optional[List[Any]] = None) -> None:
        self.replies = list(replies or [])
        self.calls: List[dict] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else "What else do you enjoy? 😊"
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, replies: Optional[List[Any]] = None) -> None:
        self.chat = SimpleNamespace(completions=FakeCompletions(replies))

    @property
    def calls(self) -> List[dict]:
        return self.chat.completions.calls


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def fake_llm() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def agent(fake_llm: FakeOpenAI) -> OnboardingAgent:
    return OnboardingAgent(model="test-model", client=fake_llm)


@pytest.fixture
def graph(store: InMemoryConversationStore, agent: OnboardingAgent):
    return build_turn_graph(store, agent)


@pytest.fixture
def make_agent():
    """Build an agent whose model replies with ``replies`` in order."""

    def _make(replies: Optional[List[Any]] = None) -> OnboardingAgent:
        return OnboardingAgent(model="test-model", client=FakeOpenAI(replies))

    return _make
