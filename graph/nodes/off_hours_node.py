# graph/nodes/off_hours_node.py
from graph.nodes.presence_helpers import alert_if_critical
from graph.state import TickState
from services.schedule import OffHoursReason
from utils.logger import get_logger

logger = get_logger(__name__)

CATCH_UP_REASONS = (OffHoursReason.LUNCH.value, OffHoursReason.AFTER_END.value)


async def off_hours_node(state: TickState, presence=None, notifier=None) -> dict:
    """勤務時間外の処理。昼休み・終業後は取りこぼし対策としてawayを再設定する"""
    reason = state["off_hours_reason"]

    if reason not in CATCH_UP_REASONS:
        logger.info(f"勤務時間外のため処理なし（{reason}）")
        return {
            "action_taken": "none",
            "status_code": 200,
            "message": "Fuera de horario laboral",
        }

    result = await presence.set_presence("away")
    if not result.ok:
        await alert_if_critical(notifier, result, state["now"])
        return {
            "action_taken": "error",
            "status_code": 500,
            "message": "Error al establecer estado away",
            "error_message": result.error,
        }

    logger.info(f"勤務時間外（{reason}）: プレゼンスをawayに再設定しました")
    return {
        "action_taken": "set_away_catch_up",
        "status_code": 200,
        "message": "Fuera de horario laboral - estado AUSENTE establecido",
    }
