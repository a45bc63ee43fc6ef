# services/holiday_calendar.py
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

import httpx

from utils.logger import get_logger

logger = get_logger(__name__)

CACHE_TTL_SECONDS = 24 * 60 * 60

# APIが使えない場合の祝日データ（コロンビア）
FALLBACK_HOLIDAYS: dict[int, list[str]] = {
    2025: [
        "2025-01-01", "2025-01-06", "2025-03-24", "2025-04-17", "2025-04-18",
        "2025-05-01", "2025-05-12", "2025-06-02", "2025-06-23", "2025-06-30",
        "2025-07-20", "2025-08-07", "2025-08-18", "2025-10-13", "2025-11-03",
        "2025-11-17", "2025-12-08", "2025-12-25",
    ],
    2026: [
        "2026-01-01", "2026-01-06", "2026-03-23", "2026-04-02", "2026-04-03",
        "2026-05-01", "2026-05-25", "2026-06-15", "2026-06-22", "2026-06-29",
        "2026-07-20", "2026-08-07", "2026-08-17", "2026-10-12", "2026-11-02",
        "2026-11-16", "2026-12-08", "2026-12-25",
    ],
}


class HolidayFetchError(Exception):
    """祝日APIの取得・解析に失敗した"""


@dataclass
class CacheEntry:
    dates: list[str]
    fetched_at: float


class HolidayCache:
    """年単位の祝日キャッシュ（有効期限付き）"""

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[int, CacheEntry] = {}

    def get(self, year: int) -> Optional[list[str]]:
        """有効なエントリがあれば日付リストを返す。期限切れは存在しない扱い"""
        entry = self._entries.get(year)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl:
            return None
        return entry.dates

    def put(self, year: int, dates: list[str]) -> None:
        self._entries[year] = CacheEntry(dates=list(dates), fetched_at=self._clock())


class NagerHolidaySource:
    """Nager.Date APIから祝日を取得する"""

    def __init__(
        self,
        country: str = "CO",
        api_url: str = "https://date.nager.at/api/v3/PublicHolidays",
        timeout: float = 5,
    ):
        self._country = country
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout

    async def fetch(self, year: int) -> list[dict]:
        """GET /{year}/{country} -> [{date, localName}, ...]"""
        url = f"{self._api_url}/{year}/{self._country}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            raise HolidayFetchError(f"タイムアウト: {url}") from e
        except httpx.HTTPError as e:
            raise HolidayFetchError(f"通信エラー: {e}") from e
        except ValueError as e:
            raise HolidayFetchError(f"レスポンス解析エラー: {e}") from e

        if not isinstance(payload, list):
            raise HolidayFetchError("レスポンス形式が不正です")
        try:
            return [{"date": item["date"], "localName": item.get("localName", "")} for item in payload]
        except (TypeError, KeyError) as e:
            raise HolidayFetchError(f"レスポンス解析エラー: {e}") from e


class HolidayCalendar:
    """祝日判定サービス（API + キャッシュ + 固定フォールバック）"""

    def __init__(
        self,
        source: NagerHolidaySource = None,
        cache: HolidayCache = None,
        fallback: dict[int, list[str]] = None,
    ):
        self._source = source or NagerHolidaySource()
        self._cache = cache or HolidayCache()
        self._fallback = FALLBACK_HOLIDAYS if fallback is None else fallback

    @property
    def cache(self) -> HolidayCache:
        return self._cache

    def fallback_for(self, year: int) -> list[str]:
        return list(self._fallback.get(year, []))

    async def get_holidays(self, year: int) -> list[str]:
        """指定年の祝日リストを返す（失敗時はフォールバック、例外は投げない）"""
        cached = self._cache.get(year)
        if cached is not None:
            return cached

        try:
            holidays = await self._source.fetch(year)
        except HolidayFetchError as e:
            fallback = self.fallback_for(year)
            logger.warning(
                f"祝日APIの取得に失敗しました（{year}）: {e} / フォールバック {len(fallback)}件を使用"
            )
            return fallback

        dates = [h["date"] for h in holidays]
        self._cache.put(year, dates)
        logger.info(f"祝日を取得しました（{year}）: {len(dates)}件")
        logger.debug("祝日: " + ", ".join(h["localName"] for h in holidays))
        return dates

    async def is_holiday(self, target_date: date) -> bool:
        """指定日が祝日かどうかを判定する"""
        holidays = await self.get_holidays(target_date.year)
        return target_date.strftime("%Y-%m-%d") in holidays
