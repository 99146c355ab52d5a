from __future__ import annotations

import pytest
from sqlalchemy import text

from app.core.state import SystemMode, SystemState
from tests.conftest import create_registry_schema, make_sqlite_engine


def test_state_starts_offline_without_session():
    state = SystemState(database_url="")

    assert state.mode is SystemMode.OFFLINE
    assert state.is_online is False
    assert state.open_session() is None


def test_connect_swaps_engine_in_and_switches_mode():
    engine = make_sqlite_engine()
    create_registry_schema(engine)
    state = SystemState(database_url="sqlite://", engine_factory=lambda url: engine)

    state.connect()

    assert state.mode is SystemMode.RAILWAY
    session = state.open_session()
    assert session is not None
    with session:
        assert session.execute(text("SELECT COUNT(*) FROM estabelecimento")).scalar() == 0


def test_connect_failure_keeps_offline_and_reraises():
    engine = make_sqlite_engine()
    state = SystemState(database_url="sqlite://", engine_factory=lambda url: engine)

    with pytest.raises(Exception):
        state.connect()

    assert state.mode is SystemMode.OFFLINE
    assert state.engine is None


def test_connect_without_url_raises():
    with pytest.raises(RuntimeError):
        SystemState(database_url="").connect()


def test_disconnect_returns_to_offline():
    state = SystemState(database_url="")
    state.attach_engine(make_sqlite_engine())
    assert state.is_online

    state.disconnect()

    assert state.mode is SystemMode.OFFLINE
    assert state.open_session() is None
