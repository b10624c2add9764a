"""
Unit Tests for graceful shutdown

Run with: pytest tests/test_shutdown.py -v
"""

import asyncio
import gc
import os
import signal
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from lifecycle import ShutdownCoordinator, TERMINATION_SIGNALS


class TestRequestShutdown:

    @pytest.mark.asyncio
    async def test_runs_closers_in_order_then_exits_zero(self):
        calls = []

        async def close_server():
            calls.append("server")

        async def close_db():
            calls.append("db")

        exit_process = MagicMock()
        coordinator = ShutdownCoordinator([close_server, close_db], exit_process=exit_process)

        await coordinator.request_shutdown("SIGTERM")

        assert calls == ["server", "db"]
        exit_process.assert_called_once_with(0)

    @pytest.mark.asyncio
    async def test_concurrent_requests_run_once(self):
        release = asyncio.Event()
        closes = []

        async def slow_close():
            closes.append(1)
            await release.wait()

        exit_process = MagicMock()
        coordinator = ShutdownCoordinator([slow_close], exit_process=exit_process)

        tasks = [
            asyncio.ensure_future(coordinator.request_shutdown(name))
            for name in ("SIGINT", "SIGTERM", "SIGUSR1", "SIGUSR2", "SIGTERM")
        ]
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(*tasks)

        assert closes == [1]
        exit_process.assert_called_once_with(0)

    @pytest.mark.asyncio
    async def test_late_request_is_ignored(self):
        exit_process = MagicMock()
        coordinator = ShutdownCoordinator(exit_process=exit_process)

        await coordinator.request_shutdown("SIGINT")
        await coordinator.request_shutdown("SIGTERM")

        assert coordinator.shutting_down is True
        exit_process.assert_called_once_with(0)

    @pytest.mark.asyncio
    async def test_closer_failure_still_exits(self, caplog):
        calls = []

        async def broken():
            raise RuntimeError("close failed")

        async def close_db():
            calls.append("db")

        exit_process = MagicMock()
        coordinator = ShutdownCoordinator([broken, close_db], exit_process=exit_process)

        await coordinator.request_shutdown("SIGTERM")

        assert calls == ["db"]
        exit_process.assert_called_once_with(0)
        assert "close failed" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_start_and_completion(self, caplog):
        caplog.set_level("INFO")
        coordinator = ShutdownCoordinator(exit_process=MagicMock(), service_name="Profile Sync API")

        await coordinator.request_shutdown("SIGUSR2")

        assert "Shutting down Profile Sync API (signal: SIGUSR2)" in caplog.text
        assert "And now his watch is ended" in caplog.text


class TestInstall:

    def test_handles_all_termination_signals(self):
        assert TERMINATION_SIGNALS == ("SIGINT", "SIGTERM", "SIGUSR1", "SIGUSR2")

    def test_registers_handler_per_signal(self):
        loop = MagicMock()
        coordinator = ShutdownCoordinator(exit_process=MagicMock())

        installed = coordinator.install(loop, ("SIGINT", "SIGTERM"))

        assert installed == ["SIGINT", "SIGTERM"]
        loop.add_signal_handler.assert_any_call(signal.SIGINT, coordinator._on_signal, "SIGINT")
        loop.add_signal_handler.assert_any_call(signal.SIGTERM, coordinator._on_signal, "SIGTERM")

    def test_skips_unavailable_signals(self):
        loop = MagicMock()
        loop.add_signal_handler.side_effect = NotImplementedError()
        coordinator = ShutdownCoordinator(exit_process=MagicMock())

        assert coordinator.install(loop, ("SIGTERM", "SIGNOPE")) == []

    @pytest.mark.asyncio
    async def test_signal_callback_schedules_shutdown(self):
        exit_process = MagicMock()
        coordinator = ShutdownCoordinator(exit_process=exit_process)

        coordinator._on_signal("SIGTERM")
        coordinator._on_signal("SIGINT")
        await asyncio.sleep(0.01)

        exit_process.assert_called_once_with(0)


class TestAddCloser:

    @pytest.mark.asyncio
    async def test_added_closer_runs_last(self):
        calls = []

        async def first():
            calls.append("first")

        async def added():
            calls.append("added")

        coordinator = ShutdownCoordinator([first], exit_process=MagicMock())
        coordinator.add_closer(added)

        await coordinator.request_shutdown("SIGTERM")

        assert calls == ["first", "added"]


class TestWaitClosed:

    @pytest.mark.asyncio
    async def test_real_signal_finishes_before_wait_closed_returns(self, caplog):
        caplog.set_level("ERROR", logger="asyncio")
        loop = asyncio.get_running_loop()
        statuses = []
        closed = []

        async def close_db():
            closed.append("db")

        coordinator = ShutdownCoordinator([close_db], exit_process=statuses.append)
        assert coordinator.install(loop, ("SIGUSR1",)) == ["SIGUSR1"]
        try:
            os.kill(os.getpid(), signal.SIGUSR1)
            for _ in range(100):
                if coordinator.shutting_down:
                    break
                await asyncio.sleep(0.01)

            await coordinator.wait_closed()
        finally:
            loop.remove_signal_handler(signal.SIGUSR1)

        gc.collect()
        assert closed == ["db"]
        assert statuses == [0]
        assert "never retrieved" not in caplog.text

    @pytest.mark.asyncio
    async def test_duplicate_signals_are_all_collected(self):
        statuses = []
        coordinator = ShutdownCoordinator(exit_process=statuses.append)

        coordinator._on_signal("SIGTERM")
        coordinator._on_signal("SIGTERM")
        coordinator._on_signal("SIGINT")
        await coordinator.wait_closed()

        assert statuses == [0]

    @pytest.mark.asyncio
    async def test_no_pending_shutdown_returns_immediately(self):
        coordinator = ShutdownCoordinator(exit_process=MagicMock())

        await coordinator.wait_closed()

        assert coordinator.shutting_down is False


class TestServerShutdownWiring:

    @pytest.mark.asyncio
    async def test_drains_then_closes_clients_and_database(self):
        import server as server_module

        app = SimpleNamespace(state=SimpleNamespace(
            billing_client=AsyncMock(),
            crm_client=AsyncMock(),
            drained=asyncio.Event(),
        ))
        app.state.drained.set()
        uvicorn_server = SimpleNamespace(should_exit=False)

        with patch.object(server_module, "close_db", AsyncMock()) as close_db:
            coordinator = server_module.build_shutdown_coordinator(app, uvicorn_server)
            await coordinator.request_shutdown("SIGTERM")

        assert app.state.exit_status == 0
        assert uvicorn_server.should_exit is True
        app.state.billing_client.aclose.assert_awaited_once()
        app.state.crm_client.aclose.assert_awaited_once()
        close_db.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lifespan_waits_for_signal_shutdown(self, caplog):
        import server as server_module

        caplog.set_level("ERROR", logger="asyncio")
        loop = asyncio.get_running_loop()
        app = SimpleNamespace(state=SimpleNamespace(
            server=SimpleNamespace(should_exit=False),
            exit_status=None,
        ))

        with patch.object(server_module, "init_db", AsyncMock()), \
                patch.object(server_module, "close_db", AsyncMock()) as close_db, \
                patch.object(server_module, "BillingClient", MagicMock(return_value=AsyncMock())), \
                patch.object(server_module, "CRMClient", MagicMock(return_value=AsyncMock())):
            try:
                async with server_module.lifespan(app):
                    app.state.shutdown_coordinator._on_signal("SIGTERM")
                    await asyncio.sleep(0)
                    assert app.state.server.should_exit is True
                    assert app.state.exit_status is None
            finally:
                for name in TERMINATION_SIGNALS:
                    loop.remove_signal_handler(getattr(signal, name))

        gc.collect()
        assert app.state.exit_status == 0
        close_db.assert_awaited_once()
        app.state.billing_client.aclose.assert_awaited_once()
        app.state.crm_client.aclose.assert_awaited_once()
        assert "never retrieved" not in caplog.text
