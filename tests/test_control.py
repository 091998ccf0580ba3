"""
Tests for the HTTP control surface.

Routes are exercised with Flask's test client against a stub
scheduler; one test runs the real scheduler behind a live server.
"""

import asyncio
import json
import urllib.request
from datetime import datetime, time, timedelta, timezone

import pytest

from budget_pal.control import ControlServer, create_control_app, loop_caller
from budget_pal.scheduling import DailyScheduler

STARTED_AT = datetime(2024, 4, 10, 8, 0, tzinfo=timezone.utc)


class StubScheduler:
    def __init__(self, last_run_at=None, in_flight=False, accept=True):
        self.last_run_at = last_run_at
        self.job_in_flight = in_flight
        self.accept = accept
        self.run_now_calls = 0

    def get_last_run_at(self):
        return self.last_run_at

    def run_now(self):
        self.run_now_calls += 1
        return self.accept


class TestRoutes:

    def test_health_before_any_run(self):
        client = create_control_app(StubScheduler(), STARTED_AT).test_client()

        response = client.get("/health")

        assert response.status_code == 200
        body = response.get_json()
        assert body["ok"] is True
        assert body["last_run_at"] is None
        assert body["job_in_flight"] is False
        assert body["uptime_seconds"] > 0
        assert "timestamp" in body

    def test_health_reports_last_run(self):
        scheduler = StubScheduler(last_run_at=STARTED_AT + timedelta(hours=1), in_flight=True)
        client = create_control_app(scheduler, STARTED_AT).test_client()

        body = client.get("/health").get_json()

        assert body["last_run_at"] == "2024-04-10T09:00:00+00:00"
        assert body["job_in_flight"] is True

    def test_run_now_accepted(self):
        scheduler = StubScheduler()
        client = create_control_app(scheduler, STARTED_AT).test_client()

        response = client.post("/api/run-now")

        assert response.status_code == 202
        assert response.get_json() == {"ok": True, "started": True}
        assert scheduler.run_now_calls == 1

    def test_run_now_while_in_flight(self):
        """Still 202, but nothing new started."""
        client = create_control_app(StubScheduler(accept=False), STARTED_AT).test_client()

        response = client.post("/api/run-now")

        assert response.status_code == 202
        assert response.get_json()["started"] is False

    def test_run_now_requires_post(self):
        client = create_control_app(StubScheduler(), STARTED_AT).test_client()
        assert client.get("/api/run-now").status_code == 405


class TestLiveServer:

    async def test_run_now_reaches_scheduler_on_loop(self):
        """A request on the server thread triggers a run on the event loop."""
        ran = asyncio.Event()

        async def job():
            ran.set()

        scheduler = DailyScheduler(job, time(8, 0))
        loop = asyncio.get_running_loop()
        server = ControlServer(
            create_control_app(scheduler, STARTED_AT, call=loop_caller(loop)),
            host="127.0.0.1",
            port=0,
        )
        server.start()
        try:
            def post():
                request = urllib.request.Request(f"http://127.0.0.1:{server.port}/api/run-now", method="POST")
                with urllib.request.urlopen(request, timeout=5) as response:
                    return response.status, json.loads(response.read())

            status, body = await asyncio.to_thread(post)
            await asyncio.wait_for(ran.wait(), timeout=2)
            await scheduler.join()
        finally:
            await asyncio.to_thread(server.stop)

        assert status == 202
        assert body == {"ok": True, "started": True}
        assert scheduler.get_last_run_at() is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
