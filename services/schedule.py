# services/schedule.py
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from services.holiday_calendar import HolidayCalendar

DEFAULT_TIMEZONE = "America/Bogota"

WEEKDAY_NAMES = ["Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo"]


@dataclass(frozen=True)
class ScheduleConfig:
    start_hour: int = 8
    end_hour: int = 17
    lunch_start_hour: int = 13
    lunch_end_hour: int = 14

    @classmethod
    def from_config(cls, config: dict) -> "ScheduleConfig":
        s = config["schedule"]
        return cls(
            start_hour=int(s["start_hour"]),
            end_hour=int(s["end_hour"]),
            lunch_start_hour=int(s["lunch_start_hour"]),
            lunch_end_hour=int(s["lunch_end_hour"]),
        )


class MomentAction(str, Enum):
    NONE = "none"
    SET_ACTIVE_MORNING = "set_active_morning"
    SET_AWAY_LUNCH = "set_away_lunch"
    SET_ACTIVE_LUNCH_RETURN = "set_active_lunch_return"
    SET_AWAY_END_OF_DAY = "set_away_end_of_day"
    SET_ACTIVE_MORNING_ERROR = "set_active_morning_error"
    SET_AWAY_LUNCH_ERROR = "set_away_lunch_error"
    SET_ACTIVE_LUNCH_RETURN_ERROR = "set_active_lunch_return_error"
    SET_AWAY_END_OF_DAY_ERROR = "set_away_end_of_day_error"

    @property
    def is_error(self) -> bool:
        return self.value.endswith("_error")

    @property
    def target_presence(self) -> Optional[str]:
        """この瞬間に設定すべきプレゼンス（active / away）"""
        if self is MomentAction.NONE:
            return None
        return "active" if self.value.startswith("set_active") else "away"

    def as_error(self) -> "MomentAction":
        if self is MomentAction.NONE or self.is_error:
            return self
        return MomentAction(f"{self.value}_error")


class OffHoursReason(str, Enum):
    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    BEFORE_START = "before_start"
    LUNCH = "lunch"
    AFTER_END = "after_end"


def format_time_ampm(moment: datetime) -> str:
    """12時間表記（例: 1:05 PM）に整形"""
    hour = moment.hour % 12 or 12
    suffix = "PM" if moment.hour >= 12 else "AM"
    return f"{hour}:{moment.minute:02d} {suffix}"


def format_hour_ampm(hour: int) -> str:
    return format_time_ampm(datetime(2000, 1, 1, hour, 0))


def format_date(target: date) -> str:
    return target.strftime("%Y-%m-%d")


def weekday_name(target: date) -> str:
    return WEEKDAY_NAMES[target.weekday()]


class ScheduleOracle:
    """勤務時間・祝日・切り替え時刻を判定する"""

    def __init__(
        self,
        schedule: ScheduleConfig,
        holiday_calendar: HolidayCalendar,
        timezone: str = DEFAULT_TIMEZONE,
    ):
        self.schedule = schedule
        self.holiday_calendar = holiday_calendar
        self.timezone = ZoneInfo(timezone)

    def now(self) -> datetime:
        """設定タイムゾーンでの現在時刻"""
        return datetime.now(self.timezone)

    def localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.timezone)
        return moment.astimezone(self.timezone)

    async def is_holiday(self, target: date) -> bool:
        if isinstance(target, datetime):
            target = self.localize(target).date()
        return await self.holiday_calendar.is_holiday(target)

    async def off_hours_reason(self, moment: datetime) -> Optional[OffHoursReason]:
        """勤務時間外の理由を返す。勤務時間内ならNone"""
        moment = self.localize(moment)
        s = self.schedule

        if await self.is_holiday(moment.date()):
            return OffHoursReason.HOLIDAY
        if moment.weekday() >= 5:
            return OffHoursReason.WEEKEND
        if moment.hour < s.start_hour:
            return OffHoursReason.BEFORE_START
        if moment.hour >= s.end_hour:
            return OffHoursReason.AFTER_END
        if s.lunch_start_hour <= moment.hour < s.lunch_end_hour:
            return OffHoursReason.LUNCH
        return None

    async def is_working_time(self, moment: datetime) -> bool:
        """時単位で勤務時間内かを判定（分は見ない）"""
        return await self.off_hours_reason(moment) is None

    async def classify_moment(self, moment: datetime) -> MomentAction:
        """毎時0分の切り替えタイミングを判定する"""
        moment = self.localize(moment)
        if moment.minute != 0:
            return MomentAction.NONE
        if moment.weekday() >= 5:
            return MomentAction.NONE
        if await self.is_holiday(moment.date()):
            return MomentAction.NONE

        # 最初に一致したものを採用
        s = self.schedule
        if moment.hour == s.start_hour:
            return MomentAction.SET_ACTIVE_MORNING
        if moment.hour == s.lunch_start_hour:
            return MomentAction.SET_AWAY_LUNCH
        if moment.hour == s.lunch_end_hour:
            return MomentAction.SET_ACTIVE_LUNCH_RETURN
        if moment.hour == s.end_hour:
            return MomentAction.SET_AWAY_END_OF_DAY
        return MomentAction.NONE
