"""Shared test fixtures and configuration."""

import itertools
import os
from typing import Callable, List
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before importing app modules
os.environ["PARLEY_DEFAULT_PROVIDER"] = "openai"
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["ANTHROPIC_API_KEY"] = "test-key"

from parley.models import ParticipantConfig, ParticipantKind
from parley.providers.base import ChatMessage, ProviderResponse


GROUP_MEMBERS = ["dog", "cat", "mouse"]


def make_backend(reply: Callable[[List[ChatMessage]], str] | str = "TERMINATE") -> MagicMock:
    """Create a mock generation backend answering with a fixed text or a function of the messages."""
    backend = MagicMock()

    async def generate(messages, model=None, **kwargs):
        content = reply(messages) if callable(reply) else reply
        return ProviderResponse(content=content, model=model)

    backend.generate = AsyncMock(side_effect=generate)
    return backend


def asks_next_role(messages: List[ChatMessage]) -> bool:
    return any("next role" in (msg.content or "") for msg in messages)


@pytest.fixture
def backend():
    """Backend that always ends the conversation."""
    return make_backend("TERMINATE")


@pytest.fixture
def chatty_backend():
    """Backend that never ends the conversation."""
    return make_backend("...")


@pytest.fixture
def direct_nodes():
    return {"human": "bot"}


@pytest.fixture
def direct_config():
    return {
        "human": ParticipantConfig(kind=ParticipantKind.HUMAN),
        "bot": ParticipantConfig(kind=ParticipantKind.AGENT),
    }


@pytest.fixture
def seed():
    return {"from": "human", "to": "bot", "content": "2 + 2 = 4?"}


@pytest.fixture
def group_nodes():
    return {"human": "manager", "manager": list(GROUP_MEMBERS)}


@pytest.fixture
def group_config():
    config = {
        "human": ParticipantConfig(kind=ParticipantKind.HUMAN),
        "manager": ParticipantConfig(kind=ParticipantKind.COORDINATOR, role="You moderate the group."),
    }
    for name in GROUP_MEMBERS:
        config[name] = ParticipantConfig(kind=ParticipantKind.AGENT, role=f"You are a {name}.")
    return config


@pytest.fixture
def group_backend():
    """Backend that answers "next role" queries by cycling through the group and "..." otherwise."""
    members = itertools.cycle(GROUP_MEMBERS)

    def reply(messages):
        if asks_next_role(messages):
            return next(members)
        return "..."

    return make_backend(reply)


@pytest.fixture
def group_seed():
    return {"from": "human", "to": "manager", "content": "Who wants to go first?"}
