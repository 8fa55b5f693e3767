from pathlib import Path

import pytest

from action import parse_action
from agents import RandomEnvironment, RandomPlayer
from board import Board
from config import build_config
from episode import Episode, parse_moves
from train import build_parser, format_summary, main, run, summarize, with_seed


def _finished(score: int, max_rank: int) -> Episode:
    game = Episode()
    game.score = score
    game.state = Board()
    game.state.tiles[0, 0] = max_rank
    return game


def _logged_actions(line: str) -> list[str]:
    return [str(move.action) for move in parse_moves(line.split("|")[1])]


def test_parser_supports_training_cli_options() -> None:
    args = build_parser().parse_args(
        [
            "--total",
            "123",
            "--block",
            "10",
            "--player",
            "random",
            "--play",
            "seed=1",
            "--evil",
            "seed=2",
            "--seed",
            "7",
            "--save",
            "games.log",
            "--log-level",
            "DEBUG",
        ]
    )

    assert args.total == 123
    assert args.block == 10
    assert args.player == "random"
    assert args.play == "seed=1"
    assert args.evil == "seed=2"
    assert args.seed == 7
    assert args.save == Path("games.log")
    assert args.log_level == "DEBUG"


def test_parser_defaults_to_learning_player() -> None:
    args = build_parser().parse_args([])

    assert args.player == "learner"
    assert args.play == ""
    assert args.seed is None
    assert args.save is None


def test_summarize_reports_scores_and_tile_reach_rates() -> None:
    games = [_finished(10, 4), _finished(30, 6), _finished(20, 6), _finished(40, 7)]

    summary = summarize(games)

    assert summary.episodes == 4
    assert summary.average == pytest.approx(25.0)
    assert summary.maximum == 40
    assert summary.reach[5] == pytest.approx(1.0)
    assert summary.reach[8] == pytest.approx(0.75)
    assert summary.reach[13] == pytest.approx(0.75)
    assert summary.reach[21] == pytest.approx(0.25)
    assert 34 not in summary.reach


def test_summarize_rejects_empty_block() -> None:
    with pytest.raises(ValueError):
        summarize([])


def test_format_summary_lists_cumulative_and_exact_rates() -> None:
    text = format_summary(4, summarize([_finished(10, 4), _finished(30, 6)]))
    lines = text.splitlines()

    assert lines[0] == "4\tavg = 20, max = 30"
    assert "\t5\t100.0%\t(50.0%)" in lines
    assert "\t13\t50.0%\t(50.0%)" in lines


def test_run_reports_once_per_block_and_for_the_remainder(
    capsys: pytest.CaptureFixture[str],
) -> None:
    player = RandomPlayer(build_config("seed=1"))
    env = RandomEnvironment(build_config("seed=2"))

    summaries = run(player, env, total=5, block=2)

    assert [s.episodes for s in summaries] == [2, 2, 1]
    out = capsys.readouterr().out
    assert out.startswith("2\tavg = ")
    assert "\n5\tavg = " in out


@pytest.mark.parametrize(("total", "block"), [(-1, 1), (1, 0)])
def test_run_rejects_bad_counts(total: int, block: int) -> None:
    player = RandomPlayer(build_config("seed=1"))
    env = RandomEnvironment(build_config("seed=2"))

    with pytest.raises(ValueError):
        run(player, env, total=total, block=block)


def test_main_runs_random_player_episodes(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(
        ["--player", "random", "--total", "3", "--block", "3", "--evil", "seed=4"]
    )

    assert exit_code == 0
    out = capsys.readouterr().out
    assert out.startswith("Training with total=3")
    assert "3\tavg = " in out


def test_main_runs_one_learning_episode(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["--total", "1", "--play", "alpha=0.1", "--evil", "seed=4"])

    assert exit_code == 0
    assert "1\tavg = " in capsys.readouterr().out


def test_main_reports_missing_weight_file_as_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    missing = tmp_path / "missing.bin"

    exit_code = main(["--total", "1", "--play", f"load={missing}"])

    assert exit_code == 1
    assert "Error: cannot open" in capsys.readouterr().err


def test_main_reports_bad_agent_arguments_as_error(
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = main(["--total", "1", "--play", "alpha=fast"])

    assert exit_code == 1
    assert "alpha must be a number" in capsys.readouterr().err


def test_with_seed_yields_to_an_explicit_seed() -> None:
    assert with_seed("", None) == ""
    assert with_seed("", 3) == "seed=3"
    assert build_config(with_seed("name=rnd", 3)).seed == 3
    assert build_config(with_seed("seed=9", 3)).seed == 9


def test_main_with_same_seed_prints_identical_summaries(
    capsys: pytest.CaptureFixture[str],
) -> None:
    argv = ["--player", "random", "--total", "4", "--block", "2", "--seed", "3"]

    assert main(argv) == 0
    first = capsys.readouterr().out
    assert main(argv) == 0
    second = capsys.readouterr().out

    assert "evil='seed=3'" in first
    assert first == second


def test_main_appends_replayable_episode_log(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    log = tmp_path / "games.log"
    argv = ["--player", "random", "--total", "2", "--seed", "5", "--save", str(log)]

    assert main(argv) == 0
    assert main(argv) == 0
    capsys.readouterr()

    lines = log.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 4
    for line in lines:
        opened, moves, _ = line.split("|")
        assert opened.startswith("dummy:random@")
        replayed = Board()
        score = 0
        for move in parse_moves(moves):
            assert parse_action(str(move.action)) == move.action
            assert move.action.apply(replayed) == move.reward
            score += move.reward
        assert Episode.from_text(line).score == score
        assert Episode.from_text(line).state == replayed
    # Same seed, so the second run repeats the first.
    assert _logged_actions(lines[0]) == _logged_actions(lines[2])


def test_main_reports_unwritable_episode_log_as_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = main(
        ["--player", "random", "--total", "1", "--save", str(tmp_path / "no" / "x.log")]
    )

    assert exit_code == 1
    assert "Error: cannot write episode log" in capsys.readouterr().err
