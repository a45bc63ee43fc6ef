# graph/nodes/presence_helpers.py
import asyncio
from datetime import datetime

from services.messages import critical_error_message
from services.slack_presence import PresenceState

SETTLE_DELAY_SECONDS = 1.5


async def settle_and_read(presence, settle_seconds: float = SETTLE_DELAY_SECONDS):
    """設定反映を待ってからプレゼンスを再取得する"""
    await asyncio.sleep(settle_seconds)
    return await presence.get_presence()


def presence_value(result) -> str:
    if not result.ok:
        return PresenceState.ERROR.value
    return result.presence.value


async def alert_if_critical(notifier, result, now: datetime, already_alerted: bool = False) -> bool:
    """認証・権限エラーならアラートを送る。送信済みならTrueを返す"""
    if already_alerted:
        return True
    if not result.is_critical:
        return False
    await notifier.send_alert(critical_error_message(result.error, now, result.needed_scope))
    return True
