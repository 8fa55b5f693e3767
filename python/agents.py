"""Players and environments that take turns on a Fibonacci-2048 board."""

from __future__ import annotations

import random
from typing import Protocol

from action import Action, Direction, NoOp, Place, Slide
from board import ILLEGAL, NUM_SQUARES, Board
from config import AgentConfig, build_config
from ntuple import NTupleNetwork
from td_zero import TDZeroLearner
from weights import load_weights, save_weights


class Agent(Protocol):
    config: AgentConfig

    def open_episode(self, flag: str = "") -> None: ...

    def close_episode(self, flag: str = "") -> None: ...

    def take_action(self, board: Board) -> Action: ...

    def close(self) -> None: ...


class RandomEnvironment:
    """Add a rank 1 tile (90%) or rank 2 tile (10%) to a random empty cell."""

    def __init__(self, config: AgentConfig) -> None:
        self.config = config
        self._rng = random.Random(config.seed)
        self._space = list(range(NUM_SQUARES))

    def open_episode(self, flag: str = "") -> None:
        pass

    def close_episode(self, flag: str = "") -> None:
        pass

    def close(self) -> None:
        pass

    def take_action(self, board: Board) -> Action:
        self._rng.shuffle(self._space)
        for pos in self._space:
            if board[pos] != 0:
                continue
            tile = 1 if self._rng.randrange(10) else 2
            return Place(pos, tile)
        return NoOp()


class RandomPlayer:
    """Select a legal slide uniformly at random."""

    def __init__(self, config: AgentConfig) -> None:
        self.config = config
        self._rng = random.Random(config.seed)
        self._directions = list(Direction)

    def open_episode(self, flag: str = "") -> None:
        pass

    def close_episode(self, flag: str = "") -> None:
        pass

    def close(self) -> None:
        pass

    def take_action(self, board: Board) -> Action:
        self._rng.shuffle(self._directions)
        for direction in self._directions:
            if board.copy().slide(direction) != ILLEGAL:
                return Slide(direction)
        return NoOp()


class LearningPlayer:
    """TD(0) N-tuple player whose weights live for the agent's lifetime.

    Weights are loaded from ``config.load`` at construction and written to
    ``config.save`` by :meth:`close`; use the player as a context manager to
    save on exit.
    """

    def __init__(self, config: AgentConfig, ntuple: NTupleNetwork | None = None) -> None:
        self.config = config
        self.ntuple = ntuple if ntuple is not None else NTupleNetwork()
        if config.load is not None:
            load_weights(self.ntuple, config.load)
        self.learner = TDZeroLearner(self.ntuple, alpha=config.alpha)

    def __enter__(self) -> LearningPlayer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open_episode(self, flag: str = "") -> None:
        self.learner.open_episode()

    def close_episode(self, flag: str = "") -> None:
        self.learner.close_episode()

    def take_action(self, board: Board) -> Action:
        return self.learner.take_action(board)

    def close(self) -> None:
        if self.config.save is not None:
            save_weights(self.ntuple, self.config.save)


PLAYER_KINDS = ("learner", "random")


def build_player(kind: str, args: str = "") -> LearningPlayer | RandomPlayer:
    """Construct the player variant named by ``kind``."""
    if kind == "learner":
        return LearningPlayer(build_config(args, defaults="name=learner role=player"))
    if kind == "random":
        return RandomPlayer(build_config(args, defaults="name=dummy role=player"))
    raise ValueError(f"unknown player kind: {kind!r}, expected one of {PLAYER_KINDS}")


def build_environment(args: str = "") -> RandomEnvironment:
    return RandomEnvironment(build_config(args, defaults="name=random role=environment"))
