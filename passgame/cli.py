"""passgame command-line interface.

Usage examples:
    python -m passgame rules -d intermediate
    python -m passgame play -d basic abc abcdefgh Abcdefgh!
    python -m passgame challenges --offline
"""

import argparse
import json
import sys

from passgame.challenges import ChallengeBoard
from passgame.config import (
    configure_logging,
    load_config,
    load_difficulties,
    validate_difficulty,
)
from passgame.rules import build_rule_set, load_assignments
from passgame.session import GameSession


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="passgame",
        description="Play the password game from the terminal.",
    )
    parser.add_argument("--config", help="Path to a JSON config file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log at DEBUG level",
    )
    sub = parser.add_subparsers(dest="command")

    # ── rules ──────────────────────────────────────────────────────────
    rules_p = sub.add_parser("rules", help="List the rules of a difficulty")
    rules_p.add_argument("-d", "--difficulty", help="Difficulty key (default: from config)")

    # ── difficulties ───────────────────────────────────────────────────
    sub.add_parser("difficulties", help="List configured difficulties")

    # ── play ───────────────────────────────────────────────────────────
    play_p = sub.add_parser(
        "play", help="Validate a sequence of passwords as successive keystrokes",
    )
    play_p.add_argument("passwords", nargs="+", help="Password after each edit")
    play_p.add_argument("-d", "--difficulty", help="Difficulty key (default: from config)")
    play_p.add_argument(
        "--offline", action="store_true",
        help="Do not contact Wordle/word/chess services",
    )
    play_p.add_argument("--json", action="store_true", help="Print one JSON object per pass")

    # ── challenges ─────────────────────────────────────────────────────
    ch_p = sub.add_parser("challenges", help="Show the current challenge values")
    ch_p.add_argument(
        "--offline", action="store_true",
        help="Do not contact Wordle/word/chess services",
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging("DEBUG" if args.verbose else config.log_level)

    if args.command == "rules":
        return _cmd_rules(args, config)
    if args.command == "difficulties":
        return _cmd_difficulties(args, config)
    if args.command == "play":
        return _cmd_play(args, config)
    if args.command == "challenges":
        return _cmd_challenges(args, config)

    parser.print_help()
    return 0


def _board(args: argparse.Namespace, config) -> ChallengeBoard:
    board = ChallengeBoard(online=config.online and not args.offline,
                           timeout=config.http_timeout)
    board.refresh_all()
    return board


def _difficulty(args: argparse.Namespace, config) -> str:
    """Resolve the requested difficulty against the assignment keys."""
    difficulty = args.difficulty or config.default_difficulty
    assignments = load_assignments(config.assignments_path)
    if not validate_difficulty(difficulty, assignments):
        print(f"Warning: unknown difficulty '{difficulty}', playing basic", file=sys.stderr)
        return difficulty
    return next(key for key in assignments if key.lower() == difficulty.lower())


def _cmd_rules(args: argparse.Namespace, config) -> int:
    rule_set = build_rule_set(_difficulty(args, config), config.assignments_path)
    print(f"  {rule_set.difficulty}: {len(rule_set)} rules")
    for rule in rule_set:
        print(f"  {rule.id:>3}  [{rule.category}]  {rule.description}")
    return 0


def _cmd_difficulties(args: argparse.Namespace, config) -> int:
    for key, diff in load_difficulties(config.difficulties_path).items():
        print(f"  {diff.icon} {key:<14} {diff.name} -- {diff.description}")
    return 0


def _cmd_play(args: argparse.Namespace, config) -> int:
    board = _board(args, config)
    snapshot = board.snapshot()
    session = GameSession(
        difficulty=_difficulty(args, config),
        assignments_path=config.assignments_path,
    )
    policy = config.engine_policy()

    result = None
    for step, pwd in enumerate(args.passwords, 1):
        result = session.submit(pwd, snapshot, policy)

        if args.json:
            print(json.dumps({"step": step, "password": pwd, **result.to_dict(snapshot)}))
            continue

        print(f"  #{step} '{pwd}'  {result.satisfied_count}/{result.total} satisfied")
        for rule in result.sorted_rules:
            mark = "ok" if rule.satisfied else "--"
            flags = []
            if rule.newly_revealed:
                flags.append("new")
            if rule.newly_satisfied:
                flags.append("done")
            suffix = f"  ({', '.join(flags)})" if flags else ""
            print(f"      [{mark}] {rule.id:>3}  {rule.description}{suffix}")
            if not rule.satisfied and config.show_hints:
                print(f"               hint: {rule.render_hint(snapshot)}")
        if result.changes.newly_unsatisfied:
            ids = ", ".join(str(i) for i in result.changes.newly_unsatisfied)
            print(f"      ! broke rule(s) {ids}")

    return 0 if result is not None and result.all_satisfied else 1


def _cmd_challenges(args: argparse.Namespace, config) -> int:
    snapshot = _board(args, config).snapshot()
    fields = snapshot.hint_fields()
    print(f"  Captcha:   {snapshot.captcha_code}")
    print(f"  QR word:   {snapshot.qr_word}")
    print(f"  Color:     {fields['color']}")
    print(f"  Constant:  {fields['constant']}")
    print(f"  Chess:     {snapshot.chess_fen}  ({fields['chess']})")
    print(f"  Wordle:    {snapshot.wordle_answer}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
