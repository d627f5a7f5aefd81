from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from coucou.core.context import BotContext
from coucou.core.outbox import Outbox
from coucou.core.state import StateStore
from coucou.reminders.scheduler import ReminderScheduler
from shared.models.reminder import Reminder
from shared.models.user_setting import UserSetting

T0 = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)  # a Monday


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeReminderRepository:
    def __init__(self) -> None:
        self.rows: dict[int, Reminder] = {}
        self._next_id = 1

    async def add(self, channel: str, nick: str, due_at: datetime, text: str) -> Reminder:
        reminder = Reminder(id=self._next_id, channel=channel, nick=nick, due_at=due_at, text=text)
        self.rows[reminder.id] = reminder
        self._next_id += 1
        return reminder

    async def get(self, reminder_id: int) -> Reminder | None:
        return self.rows.get(reminder_id)

    async def list_for(self, channel: str, nick: str) -> list[Reminder]:
        return sorted(
            (r for r in self.rows.values() if r.channel == channel and r.nick.lower() == nick.lower()),
            key=lambda r: (r.due_at, r.id),
        )

    async def list_due(self, now: datetime) -> list[Reminder]:
        return sorted(
            (r for r in self.rows.values() if r.due_at <= now), key=lambda r: (r.due_at, r.id)
        )

    async def next_due(self) -> datetime | None:
        return min((r.due_at for r in self.rows.values()), default=None)

    async def delete(self, reminder_id: int) -> bool:
        return self.rows.pop(reminder_id, None) is not None


class FakeSettingsRepository:
    def __init__(self, rows: list[UserSetting] | None = None) -> None:
        self.values: dict[tuple[str, str], str] = {
            (row.nick, row.key): row.value for row in rows or []
        }

    async def list_all(self) -> list[UserSetting]:
        return [UserSetting(nick=n, key=k, value=v) for (n, k), v in self.values.items()]

    async def upsert(self, nick: str, key: str, value: str) -> None:
        self.values[(nick, key)] = value

    async def delete(self, nick: str, key: str) -> bool:
        return self.values.pop((nick, key), None) is not None


class FakeTransport:
    def __init__(self, failures: int = 0) -> None:
        self.sent: list[tuple[str, str]] = []
        self.failures = failures

    async def send_message(self, target: str, text: str) -> None:
        if self.failures:
            self.failures -= 1
            raise ConnectionError("chat socket closed")
        self.sent.append((target, text))


class RecordingOutbox(Outbox):
    """Outbox that records messages instead of queueing them for a writer."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[tuple[str, str]] = []

    async def send(self, target: str, text: str) -> None:
        self.sent.append((target, text))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def outbox() -> RecordingOutbox:
    return RecordingOutbox()


@pytest.fixture
def reminder_repo() -> FakeReminderRepository:
    return FakeReminderRepository()


@pytest.fixture
def settings_repo() -> FakeSettingsRepository:
    return FakeSettingsRepository()


@pytest.fixture
def state(settings_repo: FakeSettingsRepository) -> StateStore:
    return StateStore(url_capacity=3, settings_repo=settings_repo)


@pytest.fixture
async def http():
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(404))
    ) as client:
        yield client


@pytest.fixture
def make_ctx(state, outbox, reminder_repo, clock, http):
    def _factory(**overrides) -> BotContext:
        reminders = ReminderScheduler(reminder_repo, outbox, clock=clock)
        fields = dict(
            state=state,
            outbox=outbox,
            reminders=reminders,
            http=http,
            bot_nick="coucoubot",
            clock=clock,
        )
        fields.update(overrides)
        return BotContext(**fields)

    return _factory
