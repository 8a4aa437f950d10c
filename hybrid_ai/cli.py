"""Command-line entry point: ``hybrid-ai "write a fizzbuzz in python"``."""

import argparse
import asyncio
import logging
import os
import sys

from rich.console import Console
from rich.markup import escape

from hybrid_ai import __version__
from hybrid_ai.config import Settings, load_settings
from hybrid_ai.errors import ConfigurationError, HybridAIError
from hybrid_ai.llm.capabilities import CapabilityRegistry, save_keys_to_file
from hybrid_ai.llm.complexity import describe_complexity
from hybrid_ai.schemas import Credentials, RoutingOptions
from hybrid_ai.service import run_hybrid_task
from hybrid_ai.utils.progress import make_announcer_factory
from hybrid_ai.utils.test_runner import SpriteTestRunner

logger = logging.getLogger(__name__)

SEPARATOR = "======="

console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hybrid-ai",
        description="Route a task to a local, aggregator or remote AI backend by complexity.",
    )
    parser.add_argument("task", nargs="?", help="The task you want the AI to help with")
    parser.add_argument(
        "-c",
        "--complexity",
        default="auto",
        choices=["auto", "low", "medium", "high"],
        help="Task complexity (default: auto, estimated from the task length)",
    )
    parser.add_argument("-r", "--remote", action="store_true", help="Force remote processing")
    parser.add_argument("-l", "--local", action="store_true", help="Force local processing")
    parser.add_argument("-m", "--model", help="Model to use for the primary backend")
    parser.add_argument("--gemini-key", help="Gemini API key for this invocation")
    parser.add_argument("--qwen-key", help="Qwen API key for this invocation")
    parser.add_argument("--openrouter-key", help="OpenRouter API key for this invocation")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument(
        "--check-keys",
        action="store_true",
        help="Show which backends are configured and exit",
    )
    parser.add_argument(
        "--save-keys",
        choices=["local", "global"],
        help="Persist the keys given on the command line to the local .env or global file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _cli_credentials(args: argparse.Namespace) -> Credentials:
    return Credentials(
        gemini=args.gemini_key or None,
        qwen=args.qwen_key or None,
        openrouter=args.openrouter_key or None,
    )


def _print_progress(message: str) -> None:
    err_console.print(f"[dim]{escape(message)}[/dim]")


def _check_keys(settings: Settings, credentials: Credentials) -> int:
    _, capabilities = CapabilityRegistry(settings).snapshot(credentials, os.environ)
    console.print("\n[bold]=== Backend Configuration ===[/bold]")
    for name, ok in (
        ("local", capabilities.local),
        ("aggregator", capabilities.aggregator),
        ("remote", capabilities.remote),
    ):
        mark = "[green]✓[/green]" if ok else "[red]✗[/red]"
        console.print(f"{mark} {name}")
    if capabilities.remote_provider:
        console.print(f"  remote provider: {capabilities.remote_provider}")

    runner = SpriteTestRunner(settings.test_runner_timeout_seconds)
    mark = "[green]✓[/green]" if runner.is_available() else "[red]✗[/red]"
    console.print(f"{mark} sprite-mcp test harness")
    return 0


def _save_keys(settings: Settings, credentials: Credentials, target: str) -> int:
    path = settings.local_key_file if target == "local" else settings.global_key_file
    try:
        written = save_keys_to_file(path, credentials)
    except ConfigurationError:
        err_console.print(
            "[red]No keys given.[/red] Use --gemini-key, --qwen-key or --openrouter-key."
        )
        return 2
    console.print(f"[green]✓[/green] Saved {', '.join(written)} to {escape(str(path))}")
    return 0


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    options = RoutingOptions(force_local=args.local, force_remote=args.remote, model=args.model)
    err_console.print("[bold cyan]Hybrid AI CLI[/bold cyan] - Processing your request...")

    try:
        outcome = await run_hybrid_task(
            args.task,
            settings=settings,
            env=os.environ,
            options=options,
            complexity=args.complexity,
            cli_credentials=_cli_credentials(args),
            announcer_factory=make_announcer_factory(
                settings.progress_interval_seconds, emit=_print_progress
            ),
        )
    except HybridAIError as e:
        err_console.print(f"[red]✗ Task execution failed:[/red] {escape(str(e))}")
        return 1

    decision = outcome.decision
    err_console.print(
        f"Task complexity: {outcome.level.label} ({describe_complexity(outcome.level)})"
    )
    err_console.print(
        f"Approach: {decision.approach} ({escape(decision.primary.model_id)})"
        f" - {escape(decision.justification)}"
    )

    print("\nResult:")
    print(SEPARATOR)
    print(outcome.text)
    print(SEPARATOR)

    if not outcome.success:
        failure = outcome.result.failure
        if failure is not None:
            err_console.print(
                f"[red]✗ Workflow stopped at phase '{failure.phase}'[/red]"
                f" ({escape(failure.error_kind)})"
            )
        return 1

    err_console.print("[green]✓ Task completed successfully![/green]")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    settings = load_settings(os.environ, args.config)
    credentials = _cli_credentials(args)

    if args.save_keys:
        return _save_keys(settings, credentials, args.save_keys)
    if args.check_keys:
        return _check_keys(settings, credentials)
    if not args.task:
        parser.print_help()
        return 0
    if args.local and args.remote:
        parser.error("--local and --remote are mutually exclusive")

    return asyncio.run(_run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
