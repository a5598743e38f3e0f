"""Builds generation requests from the transcript."""

import logging
from typing import List, Optional, Sequence

from ..models import Turn
from ..providers.base import ChatMessage
from .registry import ParticipantRegistry

logger = logging.getLogger(__name__)


GROUP_REPLY_INSTRUCTIONS = (
    "You are in a group chat. Read the following conversation and then reply.\n"
    "Do not add an introduction or conclusion to your reply because this will be "
    "a continuous conversation. Don't introduce yourself."
)

NEXT_ROLE_INSTRUCTIONS = (
    "Then select the next role that is going to speak next.\n"
    "Only return the role."
)


class ContextBuilder:
    """Maps transcript turns into the message lists sent to backends."""

    def __init__(self, registry: ParticipantRegistry):
        self.registry = registry

    def build_reply_context(self, speaker: str, turns: Sequence[Turn]) -> List[ChatMessage]:
        """
        Build the context for a direct reply.

        The speaker's system role comes first when it has one, followed by
        every turn in order: the speaker's own turns as ``assistant`` and
        everyone else's as ``user``.
        """
        messages = self._system(speaker)
        for turn in turns:
            messages.append(ChatMessage(
                role="assistant" if turn.from_ == speaker else "user",
                content=turn.content,
                name=turn.from_,
            ))
        return messages

    def build_group_reply_context(self, speaker: str, turns: Sequence[Turn]) -> List[ChatMessage]:
        """Build the context for a candidate replying inside a group."""
        messages = self._system(speaker)
        messages.append(ChatMessage(
            role="user",
            content=(
                f"{GROUP_REPLY_INSTRUCTIONS}\n\n"
                f"CHAT HISTORY\n{self.render_history(turns)}\n\n"
                f"@{speaker}:"
            ),
        ))
        return messages

    def build_selection_context(
        self,
        coordinator: str,
        candidates: Sequence[str],
        turns: Sequence[Turn],
    ) -> List[ChatMessage]:
        """Build the "next role" query a coordinator answers to pick a speaker."""
        roster = "\n".join(
            f"@{name}: {self.registry.get(name).role or 'participant'}"
            for name in candidates
        )
        messages = self._system(coordinator)
        messages.append(ChatMessage(
            role="user",
            content=(
                "You are in a role play game. The following roles are available:\n"
                f"{roster}\n\n"
                "Read the following conversation.\n\n"
                f"CHAT HISTORY\n{self.render_history(turns)}\n\n"
                f"{NEXT_ROLE_INSTRUCTIONS}"
            ),
        ))
        return messages

    @staticmethod
    def render_history(turns: Sequence[Turn]) -> str:
        return "\n".join(f"@{turn.from_}: {turn.content}" for turn in turns)

    def _system(self, name: str) -> List[ChatMessage]:
        role: Optional[str] = self.registry.get(name).role
        if role:
            return [ChatMessage(role="system", content=role, name=name)]
        return []
