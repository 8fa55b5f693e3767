"""CLI entry point for TD(0) training on Fibonacci-2048."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
import logging
from pathlib import Path
import sys
from typing import Sequence, TextIO

from agents import PLAYER_KINDS, Agent, build_environment, build_player
from board import FIBONACCI
from episode import Episode
from weights import WeightFileError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line interface for training runs."""
    parser = argparse.ArgumentParser(description="Train Fibonacci-2048 NTuple weights.")
    parser.add_argument(
        "--total", type=int, default=1000, help="Number of episodes to play."
    )
    parser.add_argument(
        "--block", type=int, default=100, help="Episodes per statistics summary."
    )
    parser.add_argument(
        "--player",
        choices=PLAYER_KINDS,
        default="learner",
        help="Player variant.",
    )
    parser.add_argument(
        "--play",
        default="",
        help="Player arguments, e.g. 'alpha=0.0025 load=w.bin save=w.bin'.",
    )
    parser.add_argument(
        "--evil", default="", help="Environment arguments, e.g. 'seed=42'."
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for agents whose arguments do not set one.",
    )
    parser.add_argument(
        "--save",
        type=Path,
        default=None,
        help="Append each finished episode's move log to this file.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity.",
    )
    return parser


@dataclass
class BlockSummary:
    """Score and tile statistics over a block of finished episodes."""

    episodes: int
    average: float
    maximum: int
    # Fraction of episodes whose largest tile is at least the key.
    reach: dict[int, float]


def summarize(episodes: Sequence[Episode]) -> BlockSummary:
    if not episodes:
        raise ValueError("cannot summarize an empty block")

    scores = [game.score for game in episodes]
    max_tiles = [game.state.max_tile() for game in episodes]
    reach: dict[int, float] = {}
    for tile in FIBONACCI[1:]:
        count = sum(1 for t in max_tiles if t >= tile)
        if count == 0:
            break
        reach[tile] = count / len(episodes)
    return BlockSummary(
        episodes=len(episodes),
        average=sum(scores) / len(scores),
        maximum=max(scores),
        reach=reach,
    )


def format_summary(played: int, summary: BlockSummary) -> str:
    lines = [f"{played}\tavg = {summary.average:.0f}, max = {summary.maximum}"]
    rates = list(summary.reach.items())
    for i, (tile, rate) in enumerate(rates):
        # Share of episodes ending with exactly this tile as the maximum.
        above = rates[i + 1][1] if i + 1 < len(rates) else 0.0
        lines.append(f"\t{tile}\t{rate:.1%}\t({rate - above:.1%})")
    return "\n".join(lines)


def play_episode(player: Agent, env: Agent) -> Episode:
    """Let the player and environment alternate until someone cannot move."""
    game = Episode()
    player.open_episode(f"~:{env.config.name}")
    env.open_episode(f"{player.config.name}:~")
    game.open_episode(f"{player.config.name}:{env.config.name}")
    while True:
        who = game.take_turns(player, env)
        if not game.apply_action(who.take_action(game.state)):
            break
    game.close_episode(who.config.name)
    player.close_episode()
    env.close_episode()
    return game


def run(
    player: Agent,
    env: Agent,
    total: int,
    block: int,
    record: TextIO | None = None,
) -> list[BlockSummary]:
    """Play ``total`` episodes and report a summary every ``block`` episodes.

    When ``record`` is given, each finished episode is written to it as one
    move-log line.
    """
    if total < 0:
        raise ValueError(f"total must be >= 0, got {total}")
    if block <= 0:
        raise ValueError(f"block must be > 0, got {block}")

    summaries: list[BlockSummary] = []
    recent: list[Episode] = []
    for played in range(1, total + 1):
        game = play_episode(player, env)
        logger.debug(
            "episode %d finished: score=%d steps=%d", played, game.score, game.step()
        )
        if record is not None:
            record.write(f"{game}\n")
        recent.append(game)
        if played % block == 0 or played == total:
            summary = summarize(recent)
            summaries.append(summary)
            print(format_summary(played, summary))
            recent = []
    return summaries


def with_seed(args: str, seed: int | None) -> str:
    """Prefix a default seed; a ``seed=`` already in ``args`` still wins."""
    if seed is None:
        return args
    return f"seed={seed} {args}".strip()


def main(argv: list[str] | None = None) -> int:
    """Execute the training workflow and persist weights on request."""
    try:
        args = build_parser().parse_args(argv)
        logging.basicConfig(
            level=args.log_level,
            format="%(asctime)s - %(levelname)-8s - %(message)s",
        )

        play_args = with_seed(args.play, args.seed)
        evil_args = with_seed(args.evil, args.seed)
        print(
            "Training with "
            f"total={args.total}, block={args.block}, player={args.player}, "
            f"play='{play_args}', evil='{evil_args}'"
        )
        record = open(args.save, "a", encoding="utf-8") if args.save else None
        try:
            player = build_player(args.player, play_args)
            env = build_environment(evil_args)
            try:
                run(player, env, args.total, args.block, record)
            finally:
                player.close()
                env.close()
        finally:
            if record is not None:
                record.close()
        if args.save:
            print(f"Episode log appended: {args.save}")
        return 0
    except (ValueError, WeightFileError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: cannot write episode log: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
