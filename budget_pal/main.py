"""
Budget Pal entry point.

Commands:
    run         Start the daily scheduler and control API (default)
    run-once    Run the daily job once and exit
    send-test   Send a short test message over the first channel
    accounts    List the bank accounts behind the stored access token

Exit codes: 0 on success or graceful shutdown, 1 on a failed command or
an unhandled error, 2 on invalid configuration.
"""

import argparse
import asyncio
import os
import signal
import sys
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from budget_pal import __version__
from budget_pal.config import Settings, load_settings, validate_all_settings
from budget_pal.control import ControlServer, create_control_app, loop_caller
from budget_pal.errors import BudgetPalError
from budget_pal.models.jobs import JobOutcome, JobTrigger
from budget_pal.orchestrator import create_app_components
from budget_pal.scheduling import DailyScheduler
from budget_pal.telemetry import configure_logging, get_logger

logger = get_logger(__name__)


async def _health_log_loop(
    scheduler: DailyScheduler,
    interval_seconds: float,
    started_at: datetime,
) -> None:
    """Periodic liveness line."""
    pid = os.getpid()
    while True:
        await asyncio.sleep(interval_seconds)
        now = datetime.now(timezone.utc)
        last_run = scheduler.get_last_run()
        current_run = scheduler.get_current_run()
        logger.info(
            "health",
            pid=pid,
            now=now.isoformat(),
            uptime_seconds=round((now - started_at).total_seconds()),
            scheduler_state=scheduler.state.value,
            job_in_flight=scheduler.job_in_flight,
            in_flight_run_id=str(current_run.run_id) if current_run else None,
            last_run_at=last_run.started_at.isoformat() if last_run else None,
            last_outcome=last_run.outcome.value if last_run and last_run.outcome else None,
        )


async def serve(settings: Settings) -> int:
    """
    Run the scheduler (and control API) until SIGINT/SIGTERM.

    Returns:
        0 after a graceful shutdown, 1 after an unhandled error
    """
    started_at = datetime.now(timezone.utc)
    loop = asyncio.get_running_loop()
    components = create_app_components(settings)
    scheduler = components.scheduler

    stop_event = asyncio.Event()
    exit_code = 0

    def request_shutdown(signame: str) -> None:
        logger.info("shutdown_requested", signal=signame)
        stop_event.set()

    def fail(error: Optional[BaseException], message: Optional[str] = None) -> None:
        nonlocal exit_code
        logger.critical(
            "unhandled_error",
            message=message,
            error=str(error) if error else None,
            exc_info=error,
        )
        exit_code = 1
        stop_event.set()

    loop.set_exception_handler(lambda _loop, context: fail(context.get("exception"), context.get("message")))
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, request_shutdown, sig.name)

    control: Optional[ControlServer] = None
    if settings.app.control_enabled:
        app = create_control_app(scheduler, started_at, call=loop_caller(loop))
        control = ControlServer(
            app,
            settings.app.control_host,
            settings.app.control_port,
            on_error=lambda error: loop.call_soon_threadsafe(fail, error),
        )
        control.start()

    scheduler.start()
    health_task = loop.create_task(
        _health_log_loop(scheduler, settings.schedule.health_log_interval_seconds, started_at)
    )
    health_task.add_done_callback(
        lambda task: fail(task.exception(), "health log loop stopped")
        if not task.cancelled() and task.exception() is not None else None
    )
    logger.info("service_started", version=__version__, next_run_at=scheduler.next_run_at().isoformat())

    try:
        await stop_event.wait()
    finally:
        health_task.cancel()
        await asyncio.gather(health_task, return_exceptions=True)
        await scheduler.stop()
        if control is not None:
            await asyncio.to_thread(control.stop)
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        loop.set_exception_handler(None)

    logger.info("service_stopped", exit_code=exit_code)
    return exit_code


async def run_once(settings: Settings) -> int:
    """Run the daily job once in the foreground."""
    components = create_app_components(settings)
    run = await components.scheduler.run_job(JobTrigger.MANUAL)
    return 0 if run is not None and run.outcome == JobOutcome.SUCCESS else 1


async def send_test(settings: Settings, to: Optional[str] = None) -> int:
    """Send the test message; report the variant pair that worked."""
    components = create_app_components(settings)
    try:
        result = await components.notifier.send_test_message(to)
    except BudgetPalError as e:
        logger.error("test_message_failed", error_type=type(e).__name__, error=str(e))
        return 1

    print(f"✓ Sent via {result.channel.value} ({result.attempt_count} attempt(s)), id={result.message_id}")
    return 0


async def list_accounts(settings: Settings) -> int:
    """Print the accounts linked to the stored access token."""
    components = create_app_components(settings)
    source = components.source
    try:
        accounts = await source.get_accounts(source.resolve_access_token())
    except BudgetPalError as e:
        logger.error("accounts_failed", error_type=type(e).__name__, error=str(e))
        return 1

    if not accounts:
        print("No accounts found.")
        return 0

    print(f"{'Name':<30} {'Mask':<6} {'Type':<12} {'Balance':>14}")
    print("-" * 66)
    for account in accounts:
        balance = (
            f"{account.current_balance:,.2f} {account.iso_currency_code or ''}".strip()
            if account.current_balance is not None else "-"
        )
        print(f"{account.name:<30} {account.mask or '':<6} {account.subtype or account.type or '':<12} {balance:>14}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="budget-pal",
        description="Daily spending summary over WhatsApp/SMS",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "run-once", "send-test", "accounts"],
        default="run",
        help="Command to execute (default: run)",
    )
    parser.add_argument(
        "--to",
        help="Recipient override (for send-test)",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Dotenv file to read settings from (default: .env)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for Budget Pal."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(env_file=args.env_file)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 2

    configure_logging(settings.app.log_level, json_logs=settings.app.log_json)
    logger.info(
        "configuration_loaded",
        command=args.command,
        environment=settings.app.app_environment,
        **validate_all_settings(settings),
    )

    commands = {
        "run": lambda: serve(settings),
        "run-once": lambda: run_once(settings),
        "send-test": lambda: send_test(settings, args.to),
        "accounts": lambda: list_accounts(settings),
    }

    try:
        return asyncio.run(commands[args.command]())
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logger.critical("fatal_error", error_type=type(e).__name__, error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
