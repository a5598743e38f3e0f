"""Append-only conversation log."""

import logging
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from ..models import Turn

logger = logging.getLogger(__name__)


class Transcript:
    """
    Ordered, append-only record of exchanged turns.

    Insertion order is the conversational order and is what gets fed back to
    the generation backends. Error turns stay in the log but are excluded from
    every history query.
    """

    def __init__(self, turns: Optional[Iterable[Turn]] = None):
        self._turns: List[Turn] = list(turns or [])

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self._turns)

    def __getitem__(self, index):
        return self._turns[index]

    @property
    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def last(self) -> Optional[Turn]:
        return self._turns[-1] if self._turns else None

    def append(self, turn: Turn) -> Turn:
        """Record a turn at the end of the log."""
        self._turns.append(turn)
        logger.debug(f"Turn {len(self._turns)}: {turn.from_} -> {turn.to} ({turn.state.value})")
        return turn

    def last_success(self) -> Optional[Turn]:
        for turn in reversed(self._turns):
            if turn.is_success:
                return turn
        return None

    def successful(self) -> List[Turn]:
        return [turn for turn in self._turns if turn.is_success]

    def between(self, first: str, second: str, since: int = 0) -> List[Turn]:
        """Successful turns exchanged in either direction between two participants."""
        pair = {(first, second), (second, first)}
        return [t for t in self._turns[since:] if t.is_success and (t.from_, t.to) in pair]

    def addressed_to(
        self,
        recipient: str,
        senders: Optional[Sequence[str]] = None,
        since: int = 0,
    ) -> List[Turn]:
        """Successful turns sent to ``recipient``, optionally only from ``senders``.

        ``since`` skips the turns logged before that index.
        """
        return [
            t for t in self._turns[since:]
            if t.is_success and t.to == recipient and (senders is None or t.from_ in senders)
        ]

    def to_dicts(self) -> List[dict]:
        return [turn.to_dict() for turn in self._turns]
