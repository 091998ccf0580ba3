"""
Control Surface

A small HTTP API next to the scheduler:

    GET  /health       -> 200 {ok, timestamp, uptime_seconds, last_run_at, job_in_flight}
    POST /api/run-now  -> 202 {ok: true, started: bool}

Flask handles requests on a werkzeug server thread. The scheduler lives
on the asyncio event loop, so every scheduler call is marshalled onto
the loop thread and the route waits for its result.
"""

import asyncio
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from flask import Flask, jsonify
from werkzeug.serving import make_server

from budget_pal.telemetry import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
Caller = Callable[[Callable[[], T]], T]


def direct_call(fn: Callable[[], T]) -> T:
    return fn()


def loop_caller(loop: asyncio.AbstractEventLoop, timeout: float = 5.0) -> Caller:
    """Run a plain callable on `loop`'s thread and block for its result."""

    def call(fn: Callable[[], T]) -> T:
        async def invoke() -> T:
            return fn()

        return asyncio.run_coroutine_threadsafe(invoke(), loop).result(timeout)

    return call


def create_control_app(
    scheduler: Any,
    started_at: datetime,
    call: Caller = direct_call,
) -> Flask:
    """
    Build the Flask app.

    Args:
        scheduler: Anything with run_now(), get_last_run_at() and job_in_flight
        started_at: Process start time, for uptime
        call: How scheduler methods are invoked (see loop_caller)
    """
    app = Flask(__name__)

    @app.route("/health", methods=["GET"])
    def health():
        now = datetime.now(timezone.utc)
        last_run_at, in_flight = call(lambda: (scheduler.get_last_run_at(), scheduler.job_in_flight))
        return jsonify({
            "ok": True,
            "timestamp": now.isoformat(),
            "uptime_seconds": round((now - started_at).total_seconds(), 3),
            "last_run_at": last_run_at.isoformat() if last_run_at else None,
            "job_in_flight": in_flight,
        })

    @app.route("/api/run-now", methods=["POST"])
    def run_now():
        started = call(scheduler.run_now)
        logger.info("manual_run_requested", started=started)
        return jsonify({"ok": True, "started": started}), 202

    return app


class ControlServer:
    """
    Serves the control app on a daemon thread.

    Args:
        app: Flask app from create_control_app
        host: Bind address
        port: Bind port (0 picks a free port)
        on_error: Called from the server thread if serving stops on an error
    """

    def __init__(
        self,
        app: Flask,
        host: str,
        port: int,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        self._server = make_server(host, port, app, threaded=True)
        self._on_error = on_error
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self._server.server_port

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._serve,
            name="control-server",
            daemon=True,
        )
        self._thread.start()
        logger.info("control_server_started", host=self._server.host, port=self.port)

    def _serve(self) -> None:
        try:
            self._server.serve_forever()
        except Exception as e:
            logger.critical("control_server_crashed", error=str(e), exc_info=True)
            if self._on_error is not None:
                self._on_error(e)

    def stop(self) -> None:
        """Stop accepting requests and wait for the server thread."""
        if self._thread is None:
            return
        self._server.shutdown()
        self._thread.join(timeout=5)
        self._thread = None
        logger.info("control_server_stopped")
