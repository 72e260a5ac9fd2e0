"""CLI entrypoints for repoctx commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

from .logging import configure_logging, parse_level_overrides
from .models import RankedFile
from .orchestrator import RANK_STRATEGIES, Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )


def _add_strategy_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--strategy",
        choices=RANK_STRATEGIES,
        default="ast",
        help="Rank by path heuristics plus syntax boosts (ast) or by import graph (imports).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repoctx",
        description="Rank repository files by importance and assemble prompt context.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-level",
        action="append",
        default=[],
        metavar="COMPONENT=LEVEL",
        help="Set one component's log level, e.g. grammars=warning; repeat for more.",
    )
    parser.add_argument("--log-file", type=Path, help="Also write log records to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    rank_parser = subparsers.add_parser(
        "rank",
        help="Print files ordered by importance.",
    )
    _add_verbose_option(rank_parser, suppress_default=True)
    _add_path_argument(rank_parser)
    rank_parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Additional ignore glob; repeat for more. Prefix with ! to re-include.",
    )
    rank_parser.add_argument("--max-files", type=int, help="Stop discovery after this many files.")
    rank_parser.add_argument(
        "--max-file-size", type=int, help="Skip files larger than this many bytes."
    )
    _add_strategy_option(rank_parser)
    rank_parser.add_argument("--limit", type=int, help="Only print the top N files.")
    rank_parser.add_argument(
        "--json",
        action="store_true",
        help="Emit the ranked list as JSON.",
    )

    context_parser = subparsers.add_parser(
        "context",
        help="Render the token-budgeted prompt context for a repository.",
    )
    _add_verbose_option(context_parser, suppress_default=True)
    _add_path_argument(context_parser)
    _add_strategy_option(context_parser)
    context_parser.add_argument("--top", type=int, help="Number of top files to include.")
    context_parser.add_argument(
        "--max-file-chars", type=int, help="Character cap for each included file."
    )
    context_parser.add_argument(
        "--output",
        type=Path,
        help="Write the prompt to this file instead of stdout.",
    )

    return parser


def _format_ranked(ranked: List[RankedFile]) -> str:
    lines = []
    for entry in ranked:
        line = f"{entry.importance:.3f}  {entry.role.value:<6}  {entry.path}"
        if entry.reason:
            line += f"  ({entry.reason})"
        lines.append(line)
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repoctx commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        levels = parse_level_overrides(args.log_level)
    except ValueError as exc:
        parser.exit(2, f"{exc}\n")
    configure_logging(verbose=bool(args.verbose), log_file=args.log_file, levels=levels)

    orchestrator = Orchestrator()

    if args.command == "rank":
        try:
            ranked = orchestrator.rank(
                args.path,
                exclude_patterns=args.exclude,
                max_files=args.max_files,
                max_file_size=args.max_file_size,
                strategy=args.strategy,
            )
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        if args.limit is not None:
            ranked = ranked[: max(args.limit, 0)]
        if args.json:
            print(json.dumps([entry.to_dict() for entry in ranked], indent=2))
        else:
            print(_format_ranked(ranked))
    elif args.command == "context":
        try:
            context = orchestrator.gather(
                args.path,
                max_top_files=args.top,
                max_file_content_chars=args.max_file_chars,
                strategy=args.strategy,
            )
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        prompt = orchestrator.render(context)
        if args.output is not None:
            args.output.write_text(prompt, encoding="utf-8")
            print(f"Context written to {_relativize(args.output)} (~{context.estimated_tokens} tokens)")
        else:
            sys.stdout.write(prompt)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
