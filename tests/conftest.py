from datetime import datetime
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from services.holiday_calendar import HolidayCache, HolidayCalendar
from services.schedule import ScheduleConfig, ScheduleOracle
from services.slack_presence import PresenceResult, PresenceState, SetPresenceResult

TZ = ZoneInfo("America/Bogota")


def bogota(year, month, day, hour, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


@pytest.fixture
def oracle():
    source = AsyncMock()
    source.fetch.return_value = [{"date": "2026-03-23", "localName": "Día de San José"}]
    calendar = HolidayCalendar(source=source, cache=HolidayCache())
    return ScheduleOracle(ScheduleConfig(), calendar, timezone="America/Bogota")


@pytest.fixture
def presence():
    """active を返し、設定は常に成功するプレゼンスサービス"""
    service = AsyncMock()
    service.configured = True
    service.get_presence.return_value = PresenceResult(
        ok=True, presence=PresenceState.ACTIVE, online=True, connection_count=1
    )
    service.set_presence.return_value = SetPresenceResult(ok=True)
    return service


@pytest.fixture
def notifier():
    service = AsyncMock()
    service.send.return_value = True
    return service
