"""Tests for the WhatsApp client lifecycle."""

import asyncio
from datetime import UTC, datetime

import pytest

from tests.conftest import FakeClientFactory, InMemorySessionRepository
from whatsapp_gateway.domain.sessions import SessionRecord
from whatsapp_gateway.services.client_lifecycle import (
    ClientLifecycle,
    ClientNotInitializedError,
)


def test_get_handle_before_initialize_fails(lifecycle: ClientLifecycle) -> None:
    with pytest.raises(ClientNotInitializedError, match="not initialized"):
        lifecycle.get_handle()


def test_initialize_without_stored_session(
    lifecycle: ClientLifecycle, client_factory: FakeClientFactory
) -> None:
    assert asyncio.run(lifecycle.initialize())

    options = client_factory.options[0]
    assert options.session == "whatsapp-session"
    assert options.session_data is None
    assert options.events is lifecycle.events
    assert lifecycle.get_handle() is client_factory.clients[0]


def test_initialize_warm_starts_from_stored_session(
    lifecycle: ClientLifecycle,
    client_factory: FakeClientFactory,
    session_repository: InMemorySessionRepository,
) -> None:
    token = {"cookies": [{"name": "wa"}], "origins": []}
    session_repository.records["whatsapp-session"] = SessionRecord(
        session="whatsapp-session",
        session_data=token,
        updated_at=datetime.now(tz=UTC),
    )

    asyncio.run(lifecycle.initialize())

    assert client_factory.options[0].session_data == token


def test_initialize_failure_leaves_handle_unset(
    lifecycle: ClientLifecycle, client_factory: FakeClientFactory
) -> None:
    client_factory.error = RuntimeError("browser crashed")

    assert asyncio.run(lifecycle.initialize()) is False
    with pytest.raises(ClientNotInitializedError):
        lifecycle.get_handle()


def test_initialize_failure_when_store_unreachable(
    lifecycle: ClientLifecycle,
    client_factory: FakeClientFactory,
    session_repository: InMemorySessionRepository,
) -> None:
    session_repository.error = RuntimeError("store down")

    assert asyncio.run(lifecycle.initialize()) is False
    assert client_factory.options == []


def test_reinitialize_closes_previous_client(
    lifecycle: ClientLifecycle, client_factory: FakeClientFactory
) -> None:
    asyncio.run(lifecycle.initialize())
    first = client_factory.clients[0]

    asyncio.run(lifecycle.initialize())

    assert first.closed
    assert lifecycle.get_handle() is client_factory.clients[1]


def test_reinitialize_survives_close_failure(
    lifecycle: ClientLifecycle, client_factory: FakeClientFactory
) -> None:
    asyncio.run(lifecycle.initialize())
    client_factory.clients[0].close_error = RuntimeError("already gone")

    assert asyncio.run(lifecycle.initialize())
    assert lifecycle.get_handle() is client_factory.clients[1]


def test_release_ignores_stale_client(
    lifecycle: ClientLifecycle, client_factory: FakeClientFactory
) -> None:
    asyncio.run(lifecycle.initialize())
    stale = client_factory.clients[0]
    asyncio.run(lifecycle.initialize())

    lifecycle.release(stale)
    assert lifecycle.get_handle() is client_factory.clients[1]

    lifecycle.release(client_factory.clients[1])
    with pytest.raises(ClientNotInitializedError):
        lifecycle.get_handle()


def test_shutdown_closes_current_client(
    lifecycle: ClientLifecycle, client_factory: FakeClientFactory
) -> None:
    asyncio.run(lifecycle.initialize())

    asyncio.run(lifecycle.shutdown())

    assert client_factory.clients[0].closed
    with pytest.raises(ClientNotInitializedError):
        lifecycle.get_handle()


def test_overlapping_initialize_leaves_one_open_client(
    lifecycle: ClientLifecycle, client_factory: FakeClientFactory
) -> None:
    client_factory.delay = 0.05

    async def scenario() -> list[bool]:
        return await asyncio.gather(lifecycle.initialize(), lifecycle.initialize())

    assert asyncio.run(scenario()) == [True, True]

    assert len(client_factory.clients) == 2
    open_clients = [client for client in client_factory.clients if not client.closed]
    assert open_clients == [lifecycle.get_handle()]
