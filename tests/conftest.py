from __future__ import annotations

import os
import sys
from datetime import datetime

import pytest


def _src_root() -> str:
    here = os.path.dirname(__file__)
    return os.path.abspath(os.path.join(here, os.pardir, "src"))


# Ensure the package is importable without an editable install
root = _src_root()
if root not in sys.path:
    sys.path.insert(0, root)

from pronote_bot.auth import PronoteAuthError  # noqa: E402
from pronote_bot.config import Settings  # noqa: E402
from pronote_bot.db import SnapshotStore  # noqa: E402
from pronote_bot.main import PronoteMonitor  # noqa: E402
from pronote_bot.models import Marks  # noqa: E402
from pronote_bot.notify.base import Notifier, NotifierGroup  # noqa: E402

NOW = datetime(2026, 10, 19, 8, 0)


class FakeSession:
    """In-memory stand-in for PronoteSession."""

    def __init__(self, homeworks=(), marks=None, lessons=(), fail_login=False):
        self._homeworks = list(homeworks)
        self._marks = marks or Marks()
        self._lessons = list(lessons)
        self.fail_login = fail_login
        self.calls = []
        self.logged_out = False

    def login(self):
        if self.fail_login:
            raise PronoteAuthError("bad credentials")
        return True

    def logout(self):
        self.logged_out = True

    def __enter__(self):
        self.login()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logout()

    def homeworks(self, start, end):
        self.calls.append(("homeworks", start, end))
        return list(self._homeworks)

    def marks(self, period):
        self.calls.append(("marks", period))
        return self._marks

    def timetable(self, start, end):
        self.calls.append(("timetable", start, end))
        return list(self._lessons)


class RecordingNotifier(Notifier):
    name = "recording"

    def __init__(self):
        self.sent = []

    def send(self, title, message):
        self.sent.append((title, message))
        return True


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        pronote_url="https://demo.index-education.net/pronote/eleve.html/",
        pronote_username="demonstration",
        pronote_password="pronotevs",
        cache_file=str(tmp_path / "cache.json"),
    )


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(tmp_path / "cache.json")


@pytest.fixture
def recorder():
    return RecordingNotifier()


@pytest.fixture
def make_monitor(settings, store, recorder):
    def _make(session):
        return PronoteMonitor(
            settings=settings,
            store=store,
            notifiers=NotifierGroup([recorder]),
            session_factory=lambda: session,
            clock=lambda: NOW,
        )

    return _make
