"""Notification interface for market gaps and structure-change escalation."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


def chunk_lines(lines: Sequence[str], max_chars: int) -> list[str]:
    """Join lines into bodies no longer than ``max_chars``.

    A single line longer than the limit is cut, never dropped.
    """

    chunks: list[str] = []
    current: list[str] = []
    size = 0
    for line in lines:
        line = line[:max_chars]
        extra = len(line) + (1 if current else 0)
        if current and size + extra > max_chars:
            chunks.append("\n".join(current))
            current, size = [], 0
            extra = len(line)
        current.append(line)
        size += extra
    if current:
        chunks.append("\n".join(current))
    return chunks


class Notifier(ABC):
    """Delivery channel for operator alerts."""

    max_message_chars: int = 4000

    @abstractmethod
    async def send(
        self, message: str, *, title: str | None = None, **kwargs: Any
    ) -> bool:
        """Deliver one message; False when the channel did not accept it."""
        ...

    async def send_lines(
        self, lines: Sequence[str], *, title: str, **kwargs: Any
    ) -> bool:
        """Deliver ``lines`` split across as many messages as the channel needs.

        Returns True only when every part was delivered; a failed part stops
        the rest so the caller can retry the whole batch.
        """

        chunks = chunk_lines(lines, self.max_message_chars - len(title) - 16)
        for index, body in enumerate(chunks, start=1):
            part_title = title if len(chunks) == 1 else f"{title} ({index}/{len(chunks)})"
            if not await self.send(body, title=part_title, **kwargs):
                return False
        return True
