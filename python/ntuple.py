"""N-tuple network afterstate evaluator for Fibonacci-2048."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from board import NUM_SQUARES, Board, symmetric_grids


TUPLE_LENGTH = 5
RANK_LIMIT = 25
TABLE_SIZE = RANK_LIMIT**TUPLE_LENGTH

# Place value of each tuple cell in the base-25 table index.
_PLACE_VALUES = RANK_LIMIT ** np.arange(TUPLE_LENGTH - 1, -1, -1, dtype=np.int64)


class NTupleNetwork:
    """N-Tuple Network evaluation model."""

    # Fixed 5-cell shapes over a row-major flattened 4x4 board.
    TUPLE_PATTERNS: list[list[int]] = [
        [0, 1, 2, 3, 4],
        [0, 1, 2, 3, 5],
        [0, 1, 2, 4, 5],
        [0, 1, 2, 4, 8],
        [0, 1, 2, 5, 6],
        [0, 1, 2, 5, 9],
        [0, 1, 2, 6, 7],
        [0, 1, 2, 6, 10],
        [0, 1, 4, 5, 6],
        [0, 1, 5, 6, 7],
        [0, 1, 5, 6, 10],
        [0, 1, 5, 9, 13],
        [0, 1, 5, 9, 10],
        [0, 1, 5, 8, 9],
        [1, 2, 5, 6, 9],
        [1, 2, 4, 5, 6],
        [1, 2, 5, 9, 10],
        [1, 2, 5, 9, 13],
        [1, 2, 5, 8, 9],
        [1, 2, 4, 5, 9],
        [1, 4, 5, 6, 9],
        [1, 4, 5, 6, 10],
        [1, 4, 5, 6, 7],
        [1, 5, 6, 9, 10],
    ]

    def __init__(self, patterns: Sequence[Sequence[int]] | None = None) -> None:
        """Allocate one zeroed table per tuple pattern."""
        if patterns is None:
            patterns = self.TUPLE_PATTERNS
        if not patterns:
            raise ValueError("at least one tuple pattern is required")
        for pattern in patterns:
            if len(pattern) != TUPLE_LENGTH:
                raise ValueError(
                    f"pattern must have {TUPLE_LENGTH} cells, got {list(pattern)}"
                )
            if not all(0 <= pos < NUM_SQUARES for pos in pattern):
                raise ValueError(f"pattern has a cell outside the board: {list(pattern)}")

        self.patterns: list[list[int]] = [list(pattern) for pattern in patterns]
        self._pattern_array = np.array(self.patterns, dtype=np.intp).reshape(
            -1, TUPLE_LENGTH
        )
        self.weights: list[np.ndarray] = [
            np.zeros(TABLE_SIZE, dtype=np.float32) for _ in self.patterns
        ]

    def estimate(self, board: Board) -> float:
        """Sum the table entries addressed by every orientation and pattern."""
        indices = self._feature_indices(board)
        value = 0.0
        for table, table_indices in zip(self.weights, indices, strict=True):
            value += float(table[table_indices].sum(dtype=np.float64))
        return value

    def update(self, board: Board, target: float, alpha: float) -> float:
        """Move the estimate of ``board`` toward ``target``.

        Every addressed entry receives ``alpha * (target - estimate)``; an
        entry reached by several orientations receives it once per visit.
        Returns the TD error before the update.
        """
        error = target - self.estimate(board)
        delta = np.float32(alpha * error)
        indices = self._feature_indices(board)
        for table, table_indices in zip(self.weights, indices, strict=True):
            np.add.at(table, table_indices, delta)
        return error

    def _feature_indices(self, board: Board) -> np.ndarray:
        """Return table indices shaped (patterns, orientations)."""
        orientations = np.stack(symmetric_grids(board.tiles))
        return np.stack(
            [
                self._pattern_index(orientations, pattern)
                for pattern in self._pattern_array
            ]
        )

    @staticmethod
    def _pattern_index(board_array: np.ndarray, pattern: Sequence[int]) -> np.ndarray:
        """Convert tuple cell ranks into base-25 table indices.

        ``board_array`` holds one flattened board per row; ranks above 24
        share the top slot.
        """
        ranks = np.minimum(board_array[..., list(pattern)], RANK_LIMIT - 1)
        return ranks.astype(np.int64) @ _PLACE_VALUES
