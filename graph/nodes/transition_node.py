# graph/nodes/transition_node.py
from graph.nodes.presence_helpers import (
    SETTLE_DELAY_SECONDS,
    alert_if_critical,
    presence_value,
    settle_and_read,
)
from graph.state import TickState
from services.messages import key_moment_message
from services.schedule import MomentAction
from utils.logger import get_logger

logger = get_logger(__name__)


async def transition_node(
    state: TickState,
    presence=None,
    notifier=None,
    oracle=None,
    settle_seconds: float = SETTLE_DELAY_SECONDS,
) -> dict:
    """切り替え時刻にプレゼンスを変更し、結果を1通だけ通知するノード"""
    action = MomentAction(state["moment_action"])
    now = state["now"]
    target = action.target_presence

    result = await presence.set_presence(target)
    if not result.ok:
        failed = action.as_error()
        logger.error(f"{action.value}: プレゼンス設定に失敗しました ({result.error})")
        await alert_if_critical(notifier, result, now)
        await notifier.send(
            key_moment_message(failed, now, oracle.schedule, ok=False, error=result.error)
        )
        return {
            "action_taken": failed.value,
            "status_code": 500,
            "message": f"Error al establecer estado {target}",
            "error_message": result.error,
        }

    after = await settle_and_read(presence, settle_seconds)
    await alert_if_critical(notifier, after, now)
    presence_after = presence_value(after)
    await notifier.send(
        key_moment_message(action, now, oracle.schedule, ok=True, presence_after=presence_after)
    )
    logger.info(f"{action.value}: プレゼンスを {target} に設定しました（確認: {presence_after}）")

    return {
        "presence_after": presence_after,
        "action_taken": action.value,
        "status_code": 200,
        "message": f"Momento clave: estado {target} establecido",
        "error_message": None,
    }
