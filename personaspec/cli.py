"""PersonaSpec CLI entrypoints."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Callable, Sequence

from . import templates
from .analysis import DEFAULT_MAX_SCREENSHOTS, DEFAULT_MODEL, DEFAULT_OUTPUT, analyze, resolve_api_key
from .cli_progress import ProgressTicker
from .errors import ConfigError, PersonaSpecError
from .report import write_report
from .results import load_results
from .scaffold import scaffold_project
from .utils import load_dotenv, read_tool_config


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {raw!r}") from exc
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {raw!r}")
    return value


def _config_max_screenshots(config: dict[str, Any]) -> int:
    raw = config.get("max_screenshots", DEFAULT_MAX_SCREENSHOTS)
    try:
        return _positive_int(str(raw))
    except argparse.ArgumentTypeError as exc:
        raise ConfigError(
            f"Invalid max_screenshots in [tool.personaspec]: {exc}",
            hint="Set max_screenshots to a positive integer in pyproject.toml.",
        ) from exc


def _build_parser(config: dict[str, Any]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="personaspec",
        description="Persona-driven Playwright testing with AI vision analysis",
    )
    sub = parser.add_subparsers(dest="command")

    init = sub.add_parser("init", help="Scaffold persona test files")
    init.add_argument("--dir", default=".", help="Project root (default: current directory)")
    init.add_argument("--template", default="first_time_visitor", choices=templates.names())
    init.add_argument("-f", "--force", action="store_true", help="Overwrite existing files")
    init.add_argument("--skip-gitignore", action="store_true", help="Do not modify .gitignore")

    report = sub.add_parser("report", help="Generate an HTML report from test results")
    report.add_argument("results", help="Path to results JSON file")
    report.add_argument("-o", "--output", default=config.get("report_output", "report.html"))

    analyze_cmd = sub.add_parser("analyze", help="Analyze test results with Claude vision")
    analyze_cmd.add_argument("results", help="Path to results JSON file")
    analyze_cmd.add_argument("-k", "--api-key", dest="api_key", help="Anthropic API key (or set ANTHROPIC_API_KEY)")
    analyze_cmd.add_argument("-o", "--output", default=config.get("analysis_output", DEFAULT_OUTPUT))
    analyze_cmd.add_argument(
        "--model",
        default=os.getenv("PERSONASPEC_MODEL") or config.get("model", DEFAULT_MODEL),
    )
    analyze_cmd.add_argument(
        "--max-screenshots",
        dest="max_screenshots",
        type=_positive_int,
        default=_config_max_screenshots(config),
    )
    return parser


def _handle_init(args: argparse.Namespace) -> int:
    root = Path(args.dir)
    print("Initializing PersonaSpec project...\n")
    result = scaffold_project(
        root,
        template=args.template,
        force=args.force,
        update_gitignore=not args.skip_gitignore,
    )
    for path in result.created:
        print(f"  Created: {path}")
    for path in result.skipped:
        print(f"  Skipped: {path} (exists, use --force to overwrite)")
    if result.gitignore_updated:
        print("  Updated: .gitignore")
    print(
        "\nPersonaSpec initialized!\n\n"
        "Next steps:\n"
        "  1. pip install personaspec[playwright] && playwright install chromium\n"
        "  2. BASE_URL=http://localhost:3000 pytest tests/personas\n"
        "  3. personaspec report test-results/<persona>-observations.json\n"
        "  4. (Optional) ANTHROPIC_API_KEY=... personaspec analyze test-results/<persona>-observations.json"
    )
    return 0


def _handle_report(args: argparse.Namespace) -> int:
    print(f"Loading results from {args.results}...")
    results = load_results(args.results, require=("persona", "observations"))
    print(f"Generating report for: {results.persona}")
    print(f"  - {len(results.tasks)} tasks")
    print(f"  - {len(results.observations)} observations")
    print(f"  - {len(results.screenshots)} screenshots")
    out_path = write_report(results, args.output)
    print(f"\nReport generated: {out_path}")
    return 0


def _handle_analyze(args: argparse.Namespace) -> int:
    api_key = resolve_api_key(args.api_key)
    print(f"Loading results from {args.results}...")
    results = load_results(args.results, require=("persona", "screenshots"))
    selected = min(len(results.screenshots), args.max_screenshots)
    print(f"Analyzing {selected} screenshots for persona: {results.persona}")
    print(f"  Model: {args.model}")
    with ProgressTicker("Sending to Claude for analysis", done_label="Analyzed in"):
        out_path = analyze(
            results,
            api_key,
            model=args.model,
            max_screenshots=args.max_screenshots,
            output_path=args.output,
        )
    print(f"\nAnalysis saved to: {out_path}")
    return 0


_HANDLERS: dict[str, Callable[[argparse.Namespace], int]] = {
    "init": _handle_init,
    "report": _handle_report,
    "analyze": _handle_analyze,
}


def _report_error(exc: PersonaSpecError) -> int:
    print(f"Error: {exc}", file=sys.stderr)
    if exc.hint:
        print(f"Hint: {exc.hint}", file=sys.stderr)
    return 1


def run(argv: Sequence[str] | None = None) -> int:
    try:
        parser = _build_parser(read_tool_config())
    except PersonaSpecError as exc:
        return _report_error(exc)
    args = parser.parse_args(argv)
    handler = _HANDLERS.get(args.command or "")
    if handler is None:
        parser.print_help()
        return 1
    try:
        return handler(args)
    except PersonaSpecError as exc:
        return _report_error(exc)


def main(argv: Sequence[str] | None = None) -> None:
    load_dotenv()
    raise SystemExit(run(argv))


if __name__ == "__main__":
    main()
