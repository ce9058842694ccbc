#!/usr/bin/env python3
"""
Pantry Planner CLI

Runs one planning task, writes the iteration log and prints the plan.

Exit codes: 0 plan accepted, 2 iteration budget exhausted, 1 fatal error.
"""

import argparse
import dataclasses
import json
import logging
import signal
import sys
import uuid
from pathlib import Path
from typing import Optional

from .config import load_app_config
from .errors import NotificationError, PlannerError
from .iteration_log import FileIterationLogger, new_log_file_path
from .models.config import AppConfig
from .notify import SlackClient
from .planner import build_planner, format_plan_text, resolve_data_path
from .tracing import TracingContext, init_from_config, shutdown_tracing
from .utils.cancel import CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_TASK = (
    "Plan dinners for the next 3 days for 2 servings each. "
    "If perishables will expire, prioritize them. "
    "If an ingredient is missing, pick a different recipe. "
    "Return a day-by-day plan."
)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_EXHAUSTED = 2

_cancel_token: Optional[CancellationToken] = None


def _signal_handler(signum: int, frame) -> None:
    """First Ctrl+C cancels the run at the next model call; the second exits."""
    if _cancel_token is None or _cancel_token.cancelled:
        logger.debug("Force shutdown requested")
        sys.exit(EXIT_FATAL)
    logger.debug("Cancellation requested")
    _cancel_token.request_cancel()
    print("\n\nCancelling... (press Ctrl+C again to force)", file=sys.stderr)


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """Configure logging based on verbosity level."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pantry-planner",
        description="Plan meals that fit the pantry using a tool-calling model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                  # Default dinner task, mock model
  %(prog)s "Plan breakfasts for 2 days"     # Custom task
  %(prog)s --backend ollama -v              # Local Ollama model, verbose logging
""",
    )
    parser.add_argument("task", nargs="?", default=DEFAULT_TASK, help="Planning task")
    parser.add_argument("-c", "--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Iteration budget (default: agent.max_iterations from config)",
    )
    parser.add_argument(
        "--backend",
        choices=("mock", "openai", "ollama"),
        default=None,
        help="Model backend (default: model.backend from config)",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Directory for iteration logs (default: agent.log_dir from config)",
    )
    parser.add_argument("--notify", action="store_true", help="Post the plan to Slack")
    parser.add_argument("--json", action="store_true", help="Print the plan JSON and trace")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser


def _apply_overrides(app_config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of the config with command-line overrides applied."""
    if args.backend:
        app_config = dataclasses.replace(
            app_config, model=dataclasses.replace(app_config.model, backend=args.backend)
        )
    if args.log_dir:
        app_config = dataclasses.replace(
            app_config, agent=dataclasses.replace(app_config.agent, log_dir=args.log_dir)
        )
    return app_config


def notify_plan(app_config: AppConfig, plan_json: str) -> None:
    """Post the formatted plan to the configured Slack webhook."""
    webhook_url = app_config.notify.slack_webhook_url
    if not webhook_url:
        logger.warning("--notify given but notify.slack_webhook_url is not configured")
        return
    SlackClient(webhook_url).post_message(
        app_config.notify.slack_channel, format_plan_text(plan_json)
    )
    logger.info("Plan posted to %s", app_config.notify.slack_channel)


def run_task(app_config: AppConfig, args: argparse.Namespace, cancel_token: CancellationToken) -> int:
    execution_id = uuid.uuid4().hex[:8]
    log_dir = resolve_data_path(app_config.agent.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = Path(new_log_file_path(app_config.model.model_id, str(log_dir)))

    tracing_context = None
    tracing_client = init_from_config(app_config.langfuse)
    if tracing_client is not None and tracing_client.enabled:
        tracing_context = TracingContext(execution_id=execution_id)
        tracing_context.start_trace(name="pantry_planner_cli", task=args.task)

    with open(log_path, "w", encoding="utf-8") as log_file:
        iteration_logger = FileIterationLogger(log_file)
        try:
            planner = build_planner(
                app_config,
                iteration_logger=iteration_logger,
                max_iterations=args.max_iterations,
                execution_id=execution_id,
                tracing_context=tracing_context,
            )
            plan = planner.run(args.task, cancel_token=cancel_token)
        except PlannerError:
            if tracing_context:
                tracing_context.end_trace(status="error")
            raise
        finally:
            iteration_logger.flush()
    logger.info("Iteration log written to %s", log_path)

    if tracing_context:
        tracing_context.end_trace(output=plan or None, status="success" if plan else "exhausted")

    if args.json:
        output = {
            "task": args.task,
            "plan": json.loads(plan) if plan else None,
            "converged": bool(plan),
            "iterations": planner.iterations,
            "trace": planner.get_trace(),
        }
        print(json.dumps(output, indent=2))
    elif plan:
        print(plan)

    if not plan:
        logger.warning("No feasible plan within %d iteration(s)", planner.max_iterations)
        return EXIT_EXHAUSTED

    if args.notify:
        try:
            notify_plan(app_config, plan)
        except NotificationError as e:
            logger.error("Slack notification failed: %s", e)
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    global _cancel_token

    args = build_parser().parse_args(argv)
    app_config = _apply_overrides(load_app_config(args.config, reload=args.config is not None), args)
    setup_logging(args.verbose, app_config.log_level)

    _cancel_token = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, _signal_handler)
    try:
        return run_task(app_config, args, _cancel_token)
    except PlannerError as e:
        logger.error("Planning failed: %s", e)
        return EXIT_FATAL
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        shutdown_tracing()
        _cancel_token = None


if __name__ == "__main__":
    sys.exit(main())
