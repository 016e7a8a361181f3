from types import SimpleNamespace

import pytest

from movienight.errors import NotificationFailure
from movienight.infra.sql import make_async_engine
from movienight.mailer import Notifier
from movienight.model.registration import ensure_schema


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_ticket(self, ticket):
        if self.fail:
            raise NotificationFailure("provider down")
        self.sent.append(ticket)
        return f"msg_{len(self.sent)}"


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'movienight.db'}"


@pytest.fixture
async def db(db_url):
    engine, sessions, _, gated = make_async_engine(db_url)
    async with engine.begin() as conn:
        await ensure_schema(conn)
    yield SimpleNamespace(engine=engine, sessions=sessions, gated=gated)
    await engine.dispose()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)
