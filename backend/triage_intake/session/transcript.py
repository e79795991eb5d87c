"""Append-only transcript buffer owned by a call session."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..core.errors import CallLifecycleError
from ..core.types import Role


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Turn:
    """One attributed utterance."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=_utc_now)

    def render(self) -> str:
        return f"{self.role}: {self.content}"


class Transcript:
    """Ordered log of final turns; becomes read-only once sealed."""

    def __init__(self) -> None:
        self._turns: list[Turn] = []
        self._sealed = False

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def append(self, role: Role, content: str) -> Turn:
        if self._sealed:
            raise CallLifecycleError("Transcript is sealed; the call has ended.")
        turn = Turn(role=role, content=content)
        self._turns.append(turn)
        return turn

    def seal(self) -> None:
        self._sealed = True

    def render(self) -> str:
        """Render as ``role: content`` lines, each newline-terminated."""
        return "".join(f"{turn.render()}\n" for turn in self._turns)
