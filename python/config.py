"""Agent argument strings parsed into typed settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

KNOWN_KEYS = frozenset({"name", "role", "seed", "alpha", "init", "load", "save"})


@dataclass
class AgentConfig:
    """Settings for one agent, built from a ``key=value`` argument string.

    ``init`` is accepted so existing argument strings keep parsing, but it has
    no effect: the learner always starts from zeroed tables of fixed size.
    """

    name: str = "unknown"
    role: str = "unknown"
    seed: int | None = None
    alpha: float = 0.0
    init: str | None = None
    load: Path | None = None
    save: Path | None = None
    extra: dict[str, str] = field(default_factory=dict)


def parse_pairs(args: str) -> dict[str, str]:
    """Split whitespace separated ``key=value`` tokens into a mapping.

    Tokens are split on the first ``=``; tokens without one are ignored and
    later keys override earlier ones.
    """
    pairs: dict[str, str] = {}
    for token in args.split():
        key, sep, value = token.partition("=")
        if not sep:
            continue
        pairs[key] = value
    return pairs


def parse_float(key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}") from None


def build_config(args: str = "", defaults: str = "") -> AgentConfig:
    """Build an AgentConfig from ``defaults`` overridden by ``args``."""
    pairs = parse_pairs(defaults)
    pairs.update(parse_pairs(args))

    config = AgentConfig(
        extra={key: value for key, value in pairs.items() if key not in KNOWN_KEYS}
    )
    if "name" in pairs:
        config.name = pairs["name"]
    if "role" in pairs:
        config.role = pairs["role"]
    if "seed" in pairs:
        config.seed = parse_int("seed", pairs["seed"])
    if "alpha" in pairs:
        config.alpha = parse_float("alpha", pairs["alpha"])
        if config.alpha < 0.0:
            raise ValueError(f"alpha must be >= 0.0, got {config.alpha}")
    if "init" in pairs:
        config.init = pairs["init"]
    if pairs.get("load"):
        config.load = Path(pairs["load"])
    if pairs.get("save"):
        config.save = Path(pairs["save"])
    return config
