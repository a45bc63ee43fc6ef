import pytest

from conftest import bogota
from graph.nodes.off_hours_node import off_hours_node
from graph.state import initial_state
from services.slack_presence import SetPresenceResult


def _make_state(reason, hour=13, minute=5):
    state = initial_state(bogota(2026, 2, 25, hour, minute))
    state["off_hours_reason"] = reason
    return state


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["lunch", "after_end"])
async def test_catch_up_forces_away(presence, notifier, reason):
    """昼休み・終業後はawayを再設定すること"""
    result = await off_hours_node(_make_state(reason), presence=presence, notifier=notifier)

    presence.set_presence.assert_awaited_once_with("away")
    assert result["action_taken"] == "set_away_catch_up"
    assert result["status_code"] == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["weekend", "holiday", "before_start"])
async def test_other_reasons_do_nothing(presence, notifier, reason):
    """土日・祝日・始業前は何もしないこと"""
    result = await off_hours_node(_make_state(reason), presence=presence, notifier=notifier)

    presence.set_presence.assert_not_awaited()
    notifier.send.assert_not_awaited()
    assert result["action_taken"] == "none"
    assert result["status_code"] == 200


@pytest.mark.asyncio
async def test_catch_up_failure(presence, notifier):
    """設定失敗時は500、認証エラーならアラート"""
    presence.set_presence.return_value = SetPresenceResult(ok=False, error="invalid_auth")
    result = await off_hours_node(_make_state("lunch"), presence=presence, notifier=notifier)

    assert result["status_code"] == 500
    assert result["error_message"] == "invalid_auth"
    notifier.send_alert.assert_awaited_once()
