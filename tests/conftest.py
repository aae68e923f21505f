from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import FakePostgreSQL, FakeServer


@pytest.fixture(autouse=True)
def _no_data_dir_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's PGX_DATA_DIR out of the tests."""
    monkeypatch.delenv("PGX_DATA_DIR", raising=False)


@pytest.fixture
def fake_server(monkeypatch: pytest.MonkeyPatch) -> FakeServer:
    """Replace the server controller used by the orchestrator."""
    server = FakeServer()
    fake_cls = type("BoundFakePostgreSQL", (FakePostgreSQL,), {"server": server})
    monkeypatch.setattr("pgx.lifecycle.PostgreSQL", fake_cls)
    monkeypatch.setattr("pgx.context.PostgreSQL", fake_cls)
    return server


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "x"
