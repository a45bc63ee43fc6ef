# schedulers/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from typing import Callable


class PresenceScheduler:
    """APSchedulerによる定期実行管理（毎時0分を必ず含む間隔で実行）"""

    def __init__(self, interval_minutes: int, job_func: Callable, timezone: str = "America/Bogota"):
        if not 1 <= interval_minutes <= 60:
            raise ValueError(f"interval_minutes は1〜60で指定してください: {interval_minutes}")
        self._interval = interval_minutes
        self._job_func = job_func
        self._scheduler = BackgroundScheduler(timezone=timezone)
        self._scheduler.add_job(
            self._job_func,
            trigger=CronTrigger(minute=f"*/{self._interval}", timezone=timezone),
            id="presence_check",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def start(self):
        """スケジューラ開始"""
        self._scheduler.start()

    def stop(self):
        """スケジューラ停止"""
        self._scheduler.shutdown(wait=False)
