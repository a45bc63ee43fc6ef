# tests/test_holiday_calendar.py
from datetime import date
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from services.holiday_calendar import (
    CACHE_TTL_SECONDS,
    FALLBACK_HOLIDAYS,
    HolidayCache,
    HolidayCalendar,
    HolidayFetchError,
    NagerHolidaySource,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _source(dates=None, error=None):
    source = AsyncMock()
    if error is not None:
        source.fetch.side_effect = error
    else:
        source.fetch.return_value = [{"date": d, "localName": "Festivo"} for d in dates]
    return source


@pytest.mark.asyncio
async def test_cache_hit_within_ttl():
    """24時間以内の2回目はAPIを呼ばず同じリストを返すこと"""
    source = _source(["2027-01-01", "2027-12-25"])
    calendar = HolidayCalendar(source=source, cache=HolidayCache(clock=FakeClock()))

    first = await calendar.get_holidays(2027)
    second = await calendar.get_holidays(2027)

    assert first == ["2027-01-01", "2027-12-25"]
    assert second == first
    source.fetch.assert_awaited_once_with(2027)


@pytest.mark.asyncio
async def test_cache_expires_after_ttl():
    """24時間経過したキャッシュは再取得すること"""
    clock = FakeClock()
    source = _source(["2027-01-01"])
    calendar = HolidayCalendar(source=source, cache=HolidayCache(clock=clock))

    await calendar.get_holidays(2027)
    clock.now += CACHE_TTL_SECONDS + 1
    await calendar.get_holidays(2027)

    assert source.fetch.await_count == 2


@pytest.mark.asyncio
async def test_fetch_failure_uses_fallback():
    """取得失敗時は2025年の固定データ18件を返すこと"""
    calendar = HolidayCalendar(source=_source(error=HolidayFetchError("timeout")))
    holidays = await calendar.get_holidays(2025)
    assert len(holidays) == 18
    assert holidays == FALLBACK_HOLIDAYS[2025]


@pytest.mark.asyncio
async def test_fetch_failure_unknown_year_is_empty():
    """固定データのない年は空リスト"""
    calendar = HolidayCalendar(source=_source(error=HolidayFetchError("network")))
    assert await calendar.get_holidays(2030) == []


@pytest.mark.asyncio
async def test_fallback_is_not_cached():
    """フォールバック結果はキャッシュせず次回APIを再試行すること"""
    source = _source(error=HolidayFetchError("network"))
    calendar = HolidayCalendar(source=source)
    await calendar.get_holidays(2026)
    await calendar.get_holidays(2026)
    assert source.fetch.await_count == 2


@pytest.mark.asyncio
async def test_is_holiday():
    """日付の一致で祝日判定"""
    calendar = HolidayCalendar(source=_source(["2026-12-25"]))
    assert await calendar.is_holiday(date(2026, 12, 25)) is True
    assert await calendar.is_holiday(date(2026, 12, 24)) is False


def _patched_client(handler):
    transport = httpx.MockTransport(handler)
    real_client = httpx.AsyncClient
    return patch(
        "services.holiday_calendar.httpx.AsyncClient",
        lambda **kwargs: real_client(transport=transport, **kwargs),
    )


@pytest.mark.asyncio
async def test_nager_source_parses_response():
    """Nager.Dateのレスポンスから日付と名称を取り出すこと"""
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(
            200,
            json=[
                {"date": "2027-01-01", "localName": "Año Nuevo", "countryCode": "CO"},
                {"date": "2027-12-25", "localName": "Navidad", "countryCode": "CO"},
            ],
        )

    source = NagerHolidaySource(country="CO", api_url="https://example.test/api/v3/PublicHolidays/")
    with _patched_client(handler):
        holidays = await source.fetch(2027)

    assert requested == ["https://example.test/api/v3/PublicHolidays/2027/CO"]
    assert holidays == [
        {"date": "2027-01-01", "localName": "Año Nuevo"},
        {"date": "2027-12-25", "localName": "Navidad"},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="error"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, json=[{"name": "sin fecha"}]),
    ],
)
async def test_nager_source_errors(response):
    """HTTPエラー・解析エラーはHolidayFetchErrorになること"""
    source = NagerHolidaySource()
    with _patched_client(lambda request: response):
        with pytest.raises(HolidayFetchError):
            await source.fetch(2027)


@pytest.mark.asyncio
async def test_nager_source_timeout():
    """タイムアウトもHolidayFetchErrorになること"""

    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    source = NagerHolidaySource(timeout=5)
    with _patched_client(handler):
        with pytest.raises(HolidayFetchError):
            await source.fetch(2027)
