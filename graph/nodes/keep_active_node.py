# graph/nodes/keep_active_node.py
from graph.nodes.presence_helpers import (
    SETTLE_DELAY_SECONDS,
    alert_if_critical,
    presence_value,
    settle_and_read,
)
from graph.state import TickState
from services.messages import away_detected_message, set_active_failed_message
from services.slack_presence import PresenceState
from utils.logger import get_logger

logger = get_logger(__name__)


async def keep_active_node(
    state: TickState,
    presence=None,
    notifier=None,
    settle_seconds: float = SETTLE_DELAY_SECONDS,
) -> dict:
    """勤務時間中にプレゼンスをactiveに保つノード"""
    now = state["now"]

    before = await presence.get_presence()
    alerted = await alert_if_critical(notifier, before, now)
    presence_before = presence_value(before)

    if before.ok and before.presence is PresenceState.AWAY:
        await notifier.send(away_detected_message(now))

    result = await presence.set_presence("active")
    if not result.ok:
        alerted = await alert_if_critical(notifier, result, now, already_alerted=alerted)
        await notifier.send(set_active_failed_message(now, result.error))
        logger.error("プレゼンスをactiveに設定できませんでした")
        return {
            "presence_before": presence_before,
            "action_taken": "error",
            "status_code": 500,
            "message": "Error al establecer estado",
            "error_message": result.error,
        }

    after = await settle_and_read(presence, settle_seconds)
    await alert_if_critical(notifier, after, now, already_alerted=alerted)
    presence_after = presence_value(after)

    if presence_before == "away" and presence_after == "active":
        logger.info("プレゼンスを修正しました: away → active")
    elif presence_after == "away":
        logger.warning("プレゼンスがawayのままです（Slackのアクティブセッションが必要）")

    return {
        "presence_before": presence_before,
        "presence_after": presence_after,
        "action_taken": "set_active",
        "status_code": 200,
        "message": "Estado actualizado exitosamente",
        "error_message": None,
    }
