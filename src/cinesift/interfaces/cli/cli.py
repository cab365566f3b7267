from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any, TextIO

import structlog

from cinesift.domain.entities.movie import PersonDetails
from cinesift.domain.entities.search import SearchSnapshot
from cinesift.domain.errors import (
    AllProvidersExhaustedError,
    ProviderConfigError,
    ProviderUnavailableError,
)
from cinesift.infrastructure.config import load_config
from cinesift.infrastructure.logging.setup import configure_logging
from cinesift.interfaces.composition import AppState, lifespan

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cinesift",
        description=(
            "Search movies across catalog providers. Queries come from the "
            "command line or, when none are given, one per line on stdin."
        ),
    )

    parser.add_argument(
        "queries",
        nargs="*",
        help="Queries to run (reads stdin when omitted).",
    )
    parser.add_argument(
        "--trending",
        action="store_true",
        help="Print the trending list and exit.",
    )
    parser.add_argument(
        "--person",
        type=int,
        default=None,
        metavar="ID",
        help="Print a TMDB cast/crew profile and filmography, then exit.",
    )

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--providers",
        default=None,
        help="Override provider chain, e.g. 'tmdb,omdb'.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.providers:
        overrides["search_provider_chain"] = args.providers
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_format:
        overrides["log_format"] = args.log_format
    return overrides


def format_snapshot(snapshot: SearchSnapshot) -> str:
    """Render a settled snapshot as plain text, one movie per line."""
    if snapshot.error:
        return snapshot.error
    if not snapshot.results:
        return "No results."
    lines = [f'Results for "{snapshot.query}" (source: {snapshot.source}):']
    for index, movie in enumerate(snapshot.results, start=1):
        year = movie.release_date[:4] if movie.release_date else "----"
        lines.append(
            f"{index:>3}. {movie.title} ({year})  {movie.vote_average:.1f}"
        )
    return "\n".join(lines)


def format_person(person: PersonDetails) -> str:
    """Profile header, biography and acting credits, newest first."""
    lines = [f"{person.name} ({person.known_for_department or 'unknown'})"]
    if person.birthday:
        born = f"Born {person.birthday}"
        if person.place_of_birth:
            born += f" in {person.place_of_birth}"
        lines.append(born)
    if person.biography:
        lines.append(person.biography)
    credits = sorted(
        person.cast, key=lambda credit: credit.movie.release_date, reverse=True
    )
    for index, credit in enumerate(credits, start=1):
        year = credit.movie.release_date[:4] or "----"
        role = f" as {credit.role}" if credit.role else ""
        lines.append(f"{index:>3}. {credit.movie.title} ({year}){role}")
    return "\n".join(lines)


async def _read_line(stream: TextIO) -> str | None:
    line = await asyncio.to_thread(stream.readline)
    return line or None


async def _run_queries(
    state: AppState,
    queries: list[str],
    stdin: TextIO,
    stdout: TextIO,
) -> int:
    async with state.new_session() as session:

        async def search_and_print(text: str) -> None:
            session.submit(text)
            await session.wait_idle()
            print(format_snapshot(session.snapshot), file=stdout, flush=True)

        if queries:
            for text in queries:
                await search_and_print(text)
            return 0

        while True:
            line = await _read_line(stdin)
            if line is None:
                return 0
            if line.strip():
                await search_and_print(line)


async def _print_trending(state: AppState, stdout: TextIO) -> int:
    try:
        outcome = await state.coordinator.trending()
    except AllProvidersExhaustedError:
        log.warning("trending_unavailable")
        print("Trending list unavailable.", file=stdout)
        return 1
    snapshot = SearchSnapshot(
        query="trending", results=outcome.results, source=outcome.source
    )
    print(format_snapshot(snapshot), file=stdout, flush=True)
    return 0


async def _print_person(state: AppState, person_id: int, stdout: TextIO) -> int:
    try:
        person = await state.coordinator.person(person_id, source="tmdb")
    except ProviderUnavailableError as exc:
        log.warning("person_unavailable", person_id=person_id, reason=exc.reason)
        print("Person profile unavailable.", file=stdout)
        return 1
    print(format_person(person), file=stdout, flush=True)
    return 0


async def run(
    args: argparse.Namespace,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    config = load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=_cli_overrides(args),
    )
    configure_logging(config)

    try:
        async with lifespan(config) as state:
            if args.trending:
                return await _print_trending(state, stdout)
            if args.person is not None:
                return await _print_person(state, args.person, stdout)
            return await _run_queries(state, list(args.queries), stdin, stdout)
    except ProviderConfigError as exc:
        log.error("provider_config_invalid", error=str(exc))
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2


def start(argv: Iterable[str] | None = None) -> int:
    """Process entrypoint."""
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(start())
