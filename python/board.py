"""Fibonacci-2048 board state, slide rule and symmetry transforms."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import numpy as np


BOARD_SIZE = 4
NUM_SQUARES = BOARD_SIZE * BOARD_SIZE
ILLEGAL = -1

# Displayed tile value for each rank, fib(0) = 0 marks an empty cell.
FIBONACCI: tuple[int, ...] = (
    0, 1, 2, 3, 5, 8, 13, 21, 34, 55, 89, 144, 233, 377, 610, 987, 1597,
    2584, 4181, 6765, 10946, 17711, 28657, 46368, 75025, 121393, 196418, 317811,
)
MAX_RANK = len(FIBONACCI) - 1


def fibonacci(rank: int) -> int:
    """Return the displayed value of a tile rank."""
    return FIBONACCI[rank]


def rank_of(value: int) -> int:
    """Return the rank of a displayed tile value."""
    try:
        return FIBONACCI.index(value)
    except ValueError:
        raise ValueError(f"{value} is not a Fibonacci tile value") from None


def can_merge(a: int, b: int) -> bool:
    """Consecutive ranks merge, as do two 1s; ranks cap at MAX_RANK."""
    if max(a, b) >= MAX_RANK:
        return False
    return abs(a - b) == 1 or (a == 1 and b == 1)


def _empty_grid() -> np.ndarray:
    return np.zeros((BOARD_SIZE, BOARD_SIZE), dtype=np.uint8)


def symmetric_grids(grid: np.ndarray) -> list[np.ndarray]:
    """Return the 8 flattened orientations of a 4x4 grid.

    The order is fixed: the clockwise rotations by 0/90/180/270 degrees,
    followed by the same four rotations of the horizontally reflected grid.
    Feature lookup and weight update must both walk this exact sequence.
    """
    if grid.shape != (BOARD_SIZE, BOARD_SIZE):
        raise ValueError(
            f"grid shape must be {(BOARD_SIZE, BOARD_SIZE)}, got {grid.shape}"
        )

    orientations: list[np.ndarray] = []
    for base in (grid, grid[:, ::-1]):
        for turns in range(4):
            orientations.append(np.rot90(base, -turns).flatten())
    return orientations


@dataclass(eq=False)
class Board:
    """4x4 grid of tile ranks.

    Cells are addressed row-major::

         (0)  (1)  (2)  (3)
         (4)  (5)  (6)  (7)
         (8)  (9) (10) (11)
        (12) (13) (14) (15)
    """

    tiles: np.ndarray = field(default_factory=_empty_grid)

    def __post_init__(self) -> None:
        tiles = np.array(self.tiles, dtype=np.uint8)
        if tiles.shape != (BOARD_SIZE, BOARD_SIZE):
            raise ValueError(
                f"tiles shape must be {(BOARD_SIZE, BOARD_SIZE)}, got {tiles.shape}"
            )
        self.tiles = tiles

    @classmethod
    def from_values(cls, values: Iterable[Iterable[int]]) -> Board:
        """Build a board from displayed tile values instead of ranks."""
        return cls(np.array([[rank_of(v) for v in row] for row in values]))

    def __getitem__(self, pos: int) -> int:
        row, col = divmod(pos, BOARD_SIZE)
        return int(self.tiles[row, col])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return bool(np.array_equal(self.tiles, other.tiles))

    def __str__(self) -> str:
        border = "+" + "-" * (6 * BOARD_SIZE) + "+"
        lines = [border]
        for row in self.tiles:
            lines.append("|" + "".join(f"{fibonacci(int(t)):6d}" for t in row) + "|")
        lines.append(border)
        return "\n".join(lines)

    def copy(self) -> Board:
        return Board(self.tiles.copy())

    def empty_cells(self) -> list[int]:
        return [int(pos) for pos in np.flatnonzero(self.tiles == 0)]

    def max_tile(self) -> int:
        return fibonacci(int(self.tiles.max()))

    def place(self, pos: int, tile: int) -> int:
        """Put a rank 1 or 2 tile on a cell, overwriting whatever is there.

        Returns 0 on success or ILLEGAL for a bad position or tile.
        """
        if not 0 <= pos < NUM_SQUARES:
            return ILLEGAL
        if tile not in (1, 2):
            return ILLEGAL
        row, col = divmod(pos, BOARD_SIZE)
        self.tiles[row, col] = tile
        return 0

    def slide(self, opcode: int) -> int:
        """Slide in direction 0/1/2/3 (up/right/down/left).

        Returns the merge reward, or ILLEGAL if nothing moved.
        """
        direction = opcode & 0b11
        if direction == 0:
            return self.slide_up()
        if direction == 1:
            return self.slide_right()
        if direction == 2:
            return self.slide_down()
        return self.slide_left()

    def slide_left(self) -> int:
        prev = self.tiles.copy()
        score = 0
        for row in self.tiles:
            top = 0
            hold = 0
            for col in range(BOARD_SIZE):
                tile = int(row[col])
                if tile == 0:
                    continue
                row[col] = 0
                if not hold:
                    hold = tile
                elif can_merge(hold, tile):
                    tile = max(tile, hold) + 1
                    row[top] = tile
                    top += 1
                    score += fibonacci(tile)
                    hold = 0
                else:
                    row[top] = hold
                    top += 1
                    hold = tile
            if hold:
                row[top] = hold
        if np.array_equal(self.tiles, prev):
            return ILLEGAL
        return score

    def slide_right(self) -> int:
        self.reflect_horizontal()
        score = self.slide_left()
        self.reflect_horizontal()
        return score

    def slide_up(self) -> int:
        # After a clockwise turn the top edge faces right.
        self.rotate_right()
        score = self.slide_right()
        self.rotate_left()
        return score

    def slide_down(self) -> int:
        self.rotate_right()
        score = self.slide_left()
        self.rotate_left()
        return score

    def transpose(self) -> None:
        self.tiles = np.ascontiguousarray(self.tiles.T)

    def reflect_horizontal(self) -> None:
        self.tiles = np.ascontiguousarray(self.tiles[:, ::-1])

    def reflect_vertical(self) -> None:
        self.tiles = np.ascontiguousarray(self.tiles[::-1, :])

    def rotate(self, times: int = 1) -> None:
        """Rotate clockwise by the given number of quarter turns."""
        turns = times % 4
        if turns == 1:
            self.rotate_right()
        elif turns == 2:
            self.reverse()
        elif turns == 3:
            self.rotate_left()

    def rotate_right(self) -> None:
        self.transpose()
        self.reflect_horizontal()

    def rotate_left(self) -> None:
        self.transpose()
        self.reflect_vertical()

    def reverse(self) -> None:
        self.reflect_horizontal()
        self.reflect_vertical()

    def symmetries(self) -> list[Board]:
        """Return the 8 symmetric orientations of this board as new boards."""
        return [
            Board(grid.reshape(BOARD_SIZE, BOARD_SIZE))
            for grid in symmetric_grids(self.tiles)
        ]
