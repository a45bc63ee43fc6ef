from conftest import bogota
from services.messages import critical_error_message, key_moment_message, set_active_failed_message
from services.schedule import MomentAction, ScheduleConfig


def test_key_moment_success():
    text = key_moment_message(
        MomentAction.SET_ACTIVE_MORNING, bogota(2026, 2, 25, 8), ScheduleConfig(), ok=True, presence_after="active"
    )
    assert "Inicio de jornada laboral" in text
    assert "Fecha: 2026-02-25 (Miércoles)" in text
    assert "Hora: 8:00 AM" in text
    assert "Slack aún no lo refleja" not in text


def test_key_moment_presence_mismatch():
    """設定した状態が反映されていなければ警告を含むこと"""
    text = key_moment_message(
        MomentAction.SET_AWAY_END_OF_DAY, bogota(2026, 2, 25, 17), ScheduleConfig(), ok=True, presence_after="active"
    )
    assert "Fin de jornada laboral" in text
    assert "Slack aún no lo refleja" in text


def test_key_moment_error_variant():
    text = key_moment_message(
        MomentAction.SET_AWAY_LUNCH_ERROR, bogota(2026, 2, 25, 13), ScheduleConfig(), ok=False, error="ratelimited"
    )
    assert "Hora de almuerzo" in text
    assert "No se pudo establecer" in text
    assert "Error: ratelimited" in text


def test_critical_error_missing_scope():
    """権限不足のアラートに必要なスコープを含むこと"""
    text = critical_error_message("missing_scope", bogota(2026, 2, 25, 9), needed_scope="users:write")
    assert "users:write" in text
    assert "api.slack.com/apps" in text


def test_critical_error_generic():
    text = critical_error_message("account_inactive", bogota(2026, 2, 25, 9))
    assert "ERROR CRÍTICO en Slack API" in text


def test_error_text_is_html_escaped():
    """HTMLモードで送るためエラー文をエスケープすること"""
    now = bogota(2026, 2, 25, 13)
    text = key_moment_message(MomentAction.SET_AWAY_LUNCH_ERROR, now, ScheduleConfig(), ok=False, error="<bad & error>")
    assert "Error: &lt;bad &amp; error&gt;" in text

    assert "&lt;x&gt;" in set_active_failed_message(now, "<x>")
    assert "&lt;x&gt;" in critical_error_message("<x>", now)
