"""Tests for the background maintenance loop."""

import asyncio
import logging
import pytest
from contextlib import suppress
from unittest.mock import AsyncMock, MagicMock

from postgrest.exceptions import APIError

from api.app import run_maintenance
from shared.exceptions import TransientStoreFailureError


def maintenance_container(purge_error: Exception) -> MagicMock:
    container = MagicMock()
    container.auth.purge_expired_sessions = AsyncMock(side_effect=purge_error)
    container.subscriptions.sweep_grace_periods = AsyncMock(return_value=0)
    return container


async def run_passes(container: MagicMock, passes: int) -> None:
    task = asyncio.create_task(run_maintenance(container, interval_seconds=0))
    try:
        for _ in range(200):
            if container.subscriptions.sweep_grace_periods.await_count >= passes:
                break
            await asyncio.sleep(0.01)
    finally:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


class TestRunMaintenance:
    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_stop_the_loop(self, caplog):
        container = maintenance_container(APIError({"message": "permission denied", "code": "42501"}))

        with caplog.at_level(logging.ERROR, logger="api.app"):
            await run_passes(container, passes=2)

        assert container.auth.purge_expired_sessions.await_count >= 2
        assert container.subscriptions.sweep_grace_periods.await_count >= 2
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors and errors[0].exc_info is not None

    @pytest.mark.asyncio
    async def test_transient_failure_is_logged_as_warning(self, caplog):
        container = maintenance_container(TransientStoreFailureError("delete_expired_sessions"))

        with caplog.at_level(logging.WARNING, logger="api.app"):
            await run_passes(container, passes=1)

        assert container.subscriptions.sweep_grace_periods.await_count >= 1
        assert any(
            "purge_expired_sessions" in r.getMessage() and r.levelno == logging.WARNING
            for r in caplog.records
        )
