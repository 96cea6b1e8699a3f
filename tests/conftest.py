"""Shared pytest fixtures for busy tests."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest


@pytest.fixture
def tmp_busy_home(tmp_path, monkeypatch):
    """Point BUSY_HOME at a temporary directory and clear BUSY_REMOTE.

    Returns a dict with paths:
        - home: temporary busy home
        - snapshot: path to tasks.json
        - ancestor: path to ancestor.json
        - lock: path to .lock file
    """
    busy_home = tmp_path / ".busy"
    busy_home.mkdir()
    monkeypatch.setenv("BUSY_HOME", str(busy_home))
    monkeypatch.delenv("BUSY_REMOTE", raising=False)

    return {
        "home": busy_home,
        "snapshot": busy_home / "tasks.json",
        "ancestor": busy_home / "ancestor.json",
        "lock": busy_home / ".lock",
    }


@pytest.fixture
def store():
    """Fresh empty store."""
    from busy_core import Store

    return Store()


@pytest.fixture
def base_time():
    """Fixed reference instant, 2024-01-15 09:00 at UTC+02:00."""
    return datetime(2024, 1, 15, 9, 0, tzinfo=timezone(timedelta(hours=2)))


@pytest.fixture
def clock(base_time):
    """Callable returning base_time shifted by the given minutes."""

    def at(minutes: float = 0) -> datetime:
        return base_time + timedelta(minutes=minutes)

    return at


class FakeTransport:
    """In-memory remote recording every push.

    Set fail_fetch / fail_push to make the next calls raise TransportError.
    """

    def __init__(self, data: Optional[str] = None) -> None:
        self.data = data
        self.pushes: List[str] = []
        self.fetches = 0
        self.fail_fetch = False
        self.fail_push = False

    def fetch(self) -> Optional[str]:
        from busy_core import TransportError

        self.fetches += 1
        if self.fail_fetch:
            raise TransportError("remote unreachable")
        return self.data

    def push(self, data: str) -> None:
        from busy_core import TransportError

        if self.fail_push:
            raise TransportError("remote rejected push")
        self.pushes.append(data)
        self.data = data


@pytest.fixture
def transport():
    """Empty in-memory remote."""
    return FakeTransport()


@pytest.fixture
def make_transport():
    """Factory for in-memory remotes preloaded with snapshot text."""
    return FakeTransport
