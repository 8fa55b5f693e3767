"""Slide and place actions exchanged between agents and the episode."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from board import ILLEGAL, NUM_SQUARES, Board


class Direction(IntEnum):
    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3


_DIRECTION_CODES = "URDL"


@dataclass(frozen=True)
class Slide:
    """Player action: slide every tile toward one edge."""

    direction: Direction

    def apply(self, board: Board) -> int:
        return board.slide(int(self.direction))

    def __str__(self) -> str:
        return "#" + _DIRECTION_CODES[self.direction]


@dataclass(frozen=True)
class Place:
    """Environment action: put a raw tile value (1 or 2) on a cell."""

    pos: int
    tile: int

    def apply(self, board: Board) -> int:
        return board.place(self.pos, self.tile)

    def __str__(self) -> str:
        return f"{self.pos:x}{self.tile}"


@dataclass(frozen=True)
class NoOp:
    """Returned by an agent that has no legal move."""

    def apply(self, board: Board) -> int:
        return ILLEGAL

    def __str__(self) -> str:
        return "??"


Action = Union[Slide, Place, NoOp]


def parse_action(text: str) -> Action:
    """Decode the text form written to move logs."""
    if len(text) == 2 and text[0] == "#" and text[1] in _DIRECTION_CODES:
        return Slide(Direction(_DIRECTION_CODES.index(text[1])))
    if len(text) == 2 and text[1] in "12":
        try:
            pos = int(text[0], 16)
        except ValueError:
            raise ValueError(f"invalid action: {text!r}") from None
        if pos < NUM_SQUARES:
            return Place(pos, int(text[1]))
    if text == "??":
        return NoOp()
    raise ValueError(f"invalid action: {text!r}")
