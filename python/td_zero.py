"""TD(0) afterstate learner for the Fibonacci-2048 N-tuple model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging

from action import Action, Direction, NoOp, Slide
from board import ILLEGAL, Board
from ntuple import NTupleNetwork

logger = logging.getLogger(__name__)


class EpisodeState(Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    CONSOLIDATING = "consolidating"


@dataclass(frozen=True)
class Step:
    reward: int
    after: Board


class TDZeroLearner:
    """Greedy one-ply player that learns afterstate values by TD(0)."""

    def __init__(self, ntuple: NTupleNetwork, alpha: float = 0.0) -> None:
        if alpha < 0.0:
            raise ValueError(f"alpha must be >= 0.0, got {alpha}")

        self.ntuple = ntuple
        self.alpha = alpha
        self.history: list[Step] = []
        self.state = EpisodeState.IDLE

    def open_episode(self) -> None:
        """Start collecting a new episode, dropping any unfinished one."""
        self.history.clear()
        self.state = EpisodeState.COLLECTING

    def take_action(self, before: Board) -> Action:
        """Pick the slide maximizing reward plus afterstate value."""
        best: tuple[Direction, Step] | None = None
        best_score = float("-inf")
        for direction in Direction:
            after = before.copy()
            reward = after.slide(direction)
            if reward == ILLEGAL:
                continue
            score = reward + self.ntuple.estimate(after)
            if score > best_score:
                best_score = score
                best = (direction, Step(reward, after))

        if best is None:
            return NoOp()

        direction, step = best
        self.history.append(step)
        return Slide(direction)

    def close_episode(self) -> None:
        """Replay the episode backward and pull each afterstate to its target."""
        self.state = EpisodeState.CONSOLIDATING
        try:
            if self.history and self.alpha != 0.0:
                self._update_weights(self.history)
        finally:
            self.history.clear()
            self.state = EpisodeState.IDLE

    def _update_weights(self, history: list[Step]) -> None:
        """Apply TD(0) updates in reverse order, the last afterstate is terminal."""
        error = self.ntuple.update(history[-1].after, 0.0, self.alpha)
        total_error = abs(error)
        for t in range(len(history) - 2, -1, -1):
            following = history[t + 1]
            target = following.reward + self.ntuple.estimate(following.after)
            total_error += abs(self.ntuple.update(history[t].after, target, self.alpha))

        logger.debug(
            "consolidated %d steps, mean |td error| = %.4f",
            len(history),
            total_error / len(history),
        )
