"""Single game record: board state, score and the move log."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
import time
from typing import TypeVar

from action import Action, Place, Slide, parse_action
from board import ILLEGAL, Board

AgentT = TypeVar("AgentT")

# One logged move: action text, optional [reward], optional (elapsed ms).
_MOVE_PATTERN = re.compile(r"(#.|..)(?:\[(\d+)\])?(?:\((\d+)\))?")


def _millisec() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class Move:
    action: Action
    reward: int
    time: int

    def __str__(self) -> str:
        text = str(self.action)
        if self.reward:
            text += f"[{self.reward}]"
        if self.time:
            text += f"({self.time})"
        return text


@dataclass
class Episode:
    """Board, score and move log of one game.

    The environment moves twice to set up the board, then the player and the
    environment alternate.
    """

    state: Board = field(default_factory=Board)
    score: int = 0
    moves: list[Move] = field(default_factory=list)
    opened: tuple[str, int] = ("N/A", 0)
    closed: tuple[str, int] = ("N/A", 0)
    _turn_start: int = field(default_factory=_millisec, repr=False, compare=False)

    def open_episode(self, tag: str) -> None:
        self.opened = (tag, _millisec())

    def close_episode(self, tag: str) -> None:
        self.closed = (tag, _millisec())

    def take_turns(self, play: AgentT, evil: AgentT) -> AgentT:
        self._turn_start = _millisec()
        return play if max(self.step() + 1, 2) % 2 else evil

    def last_turns(self, play: AgentT, evil: AgentT) -> AgentT:
        return self.take_turns(evil, play)

    def apply_action(self, move: Action) -> bool:
        """Apply an action to the board and log it; False if it was illegal."""
        reward = move.apply(self.state)
        if reward == ILLEGAL:
            return False
        self.moves.append(Move(move, reward, _millisec() - self._turn_start))
        self.score += reward
        return True

    def step(self, kind: type | None = None) -> int:
        """Count logged moves, optionally only slides or only places."""
        size = len(self.moves)
        slides = max(size - 1, 0) // 2
        if kind is Slide:
            return slides
        if kind is Place:
            return size - slides
        return size

    def elapsed(self) -> int:
        return self.closed[1] - self.opened[1]

    def __str__(self) -> str:
        opened = f"{self.opened[0]}@{self.opened[1]}"
        closed = f"{self.closed[0]}@{self.closed[1]}"
        return f"{opened}|{''.join(str(m) for m in self.moves)}|{closed}"

    @classmethod
    def from_text(cls, line: str) -> Episode:
        """Rebuild an episode from the line written by ``str(episode)``.

        The logged actions are replayed on an empty board, so the state and
        score are recomputed rather than trusted.
        """
        parts = line.strip().split("|")
        if len(parts) != 3:
            raise ValueError(f"invalid episode record: {line!r}")
        game = cls(opened=_parse_tag(parts[0]), closed=_parse_tag(parts[2]))
        for move in parse_moves(parts[1]):
            reward = move.action.apply(game.state)
            if reward != move.reward:
                raise ValueError(
                    f"move {move.action} replays with reward {reward}, "
                    f"logged {move.reward}"
                )
            game.moves.append(move)
            game.score += reward
        return game


def _parse_tag(text: str) -> tuple[str, int]:
    tag, sep, stamp = text.rpartition("@")
    if not sep or not stamp.isdigit():
        raise ValueError(f"invalid episode tag: {text!r}")
    return tag, int(stamp)


def parse_moves(text: str) -> list[Move]:
    """Decode a concatenated move log into Move records."""
    moves: list[Move] = []
    pos = 0
    while pos < len(text):
        match = _MOVE_PATTERN.match(text, pos)
        if match is None:
            raise ValueError(f"invalid move log at offset {pos}: {text[pos:]!r}")
        action, reward, elapsed = match.groups()
        moves.append(Move(parse_action(action), int(reward or 0), int(elapsed or 0)))
        pos = match.end()
    return moves
