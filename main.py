#!/usr/bin/env python3
"""
Statsbook Validator — Entry Point
=================================

Reads a statsbook (.xlsx), prints every error and warning found, and exits
non-zero when the statsbook has errors.

Usage:
    python main.py game.xlsx                 # Coloured report
    python main.py game.xlsx --json          # Full report (game + errors) as JSON
    LOG_LEVEL=DEBUG python main.py game.xlsx # Reader progress on stderr
"""

from __future__ import annotations

import argparse
import sys

from dotenv import load_dotenv

from statsbook_validator.config import Settings, configure_logging
from statsbook_validator.exceptions import StatsbookError
from statsbook_validator.models import Category, StatsbookReport
from statsbook_validator.pipeline import StatsbookPipeline

# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_HEADINGS = {
    Category.SCORES: "SCORES",
    Category.PENALTIES: "PENALTIES",
    Category.LINEUPS: "LINEUPS",
    Category.WARNINGS: "WARNINGS  --  should be checked, but may be OK",
}


# ─── Pretty Printer Helpers ─────────────────────────────────────────


def _print_game_details(report: StatsbookReport) -> None:
    game = report.game
    home, away = game.teams.home, game.teams.away
    print(f"  Venue:       {game.venue.name or '-'} ({game.venue.city or '-'}, {game.venue.state or '-'})")
    print(f"  Date/Time:   {game.date or '-'} {game.time or ''}")
    print(f"  Home:        {home.league or ''} {home.name or ''} {_DIM}({len(home.persons)} skaters){_RESET}")
    print(f"  Away:        {away.league or ''} {away.name or ''} {_DIM}({len(away.persons)} skaters){_RESET}")
    for period, data in game.periods.items():
        print(f"  Period {period}:    {len(data.jams)} jams")


def _print_category(report: StatsbookReport, category: Category) -> None:
    """Print every rule in a category that has hits, with its diagnostics."""
    color = _YELLOW if category is Category.WARNINGS else _RED
    rules = [r for r in report.errors.rules(category).values() if r.diagnostics]
    if not rules:
        return
    total = sum(len(r.diagnostics) for r in rules)
    print(f"\n  {color}{_BOLD}{_HEADINGS[category]} ({total}){_RESET}")
    for rule in rules:
        print(f"    {color}{rule.description}{_RESET}")
        for line in rule.events:
            print(f"      {line}")
        if rule.long:
            print(f"      {_DIM}{rule.long}{_RESET}")
        print()


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_report(report: StatsbookReport) -> int:
    """Pretty-print the validation report with ANSI color codes.

    Returns:
        0 if the statsbook has no errors, 1 otherwise.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  STATSBOOK VALIDATION REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  File:        {report.filename}")
    print(f"  Version:     {report.version}")
    if report.source_hash:
        print(f"  SHA-256:     {_DIM}{report.source_hash[:16]}...{_RESET}")
    print(f"{'─' * _WIDTH}")

    _print_game_details(report)

    print(f"{'─' * _WIDTH}")

    for category in (Category.SCORES, Category.LINEUPS, Category.PENALTIES, Category.WARNINGS):
        _print_category(report, category)

    print(f"{'=' * _WIDTH}")
    if report.is_valid:
        print(f"  {_GREEN}{_BOLD}NO ERRORS FOUND{_RESET}  ({report.warning_count} warning(s))")
    else:
        print(
            f"  {_RED}{_BOLD}{report.error_count} ERROR(S) FOUND{_RESET}"
            f"  ({report.warning_count} warning(s))"
        )
    print(f"{'=' * _WIDTH}\n")

    return 0 if report.is_valid else 1


# ─── Main ────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    """Validate one statsbook file and print the report."""
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings)

    parser = argparse.ArgumentParser(description="Check a roller derby statsbook for errors.")
    parser.add_argument("path", help="Statsbook .xlsx file")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    args = parser.parse_args(argv)

    try:
        pipeline = StatsbookPipeline(settings=settings)
        report = pipeline.run_file(args.path)
    except StatsbookError as exc:
        print(f"{_RED}{_BOLD}[{exc.code}]{_RESET} {exc}", file=sys.stderr)
        for key, value in exc.details.items():
            print(f"  {_DIM}{key}: {value}{_RESET}", file=sys.stderr)
        return 2

    if args.json:
        print(report.model_dump_json(indent=2))
        return 0 if report.is_valid else 1
    return print_report(report)


if __name__ == "__main__":
    sys.exit(main())
