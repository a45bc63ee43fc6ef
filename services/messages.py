# services/messages.py
import html
from datetime import datetime
from typing import Optional

from services.schedule import (
    MomentAction,
    ScheduleConfig,
    format_date,
    format_hour_ampm,
    format_time_ampm,
    weekday_name,
)

MOMENT_TITLES = {
    MomentAction.SET_ACTIVE_MORNING: "🌅 <b>Inicio de jornada laboral</b>",
    MomentAction.SET_AWAY_LUNCH: "🍽️ <b>Hora de almuerzo</b>",
    MomentAction.SET_ACTIVE_LUNCH_RETURN: "⏰ <b>Vuelta del almuerzo</b>",
    MomentAction.SET_AWAY_END_OF_DAY: "🏠 <b>Fin de jornada laboral</b>",
}

PRESENCE_LABELS = {
    "active": "🟢 ACTIVO",
    "away": "🌙 AUSENTE",
    "error": "⚠️ DESCONOCIDO",
}


def presence_label(value) -> str:
    return PRESENCE_LABELS.get(getattr(value, "value", value), PRESENCE_LABELS["error"])


def _date_lines(now: datetime) -> str:
    return f"Fecha: {format_date(now)} ({weekday_name(now)})\nHora: {format_time_ampm(now)}"


def key_moment_message(
    action: MomentAction,
    now: datetime,
    schedule: ScheduleConfig,
    ok: bool,
    presence_after=None,
    error: Optional[str] = None,
) -> str:
    """切り替え時刻の通知文"""
    base = action
    if action.is_error:
        base = MomentAction(action.value[: -len("_error")])

    lines = [MOMENT_TITLES[base], "", _date_lines(now)]
    if base is MomentAction.SET_AWAY_LUNCH:
        lines.append(f"Regreso: {format_hour_ampm(schedule.lunch_end_hour)}")

    target = base.target_presence
    if ok:
        lines.append(f"Estado Slack: {presence_label(presence_after)}")
        if presence_after is not None and getattr(presence_after, "value", presence_after) != target:
            lines.append(f"⚠️ Se solicitó {presence_label(target)} pero Slack aún no lo refleja.")
    else:
        lines.append(f"❌ No se pudo establecer {presence_label(target)}")
        if error:
            lines.append(f"Error: {html.escape(error)}")
    return "\n".join(lines)


def away_detected_message(now: datetime) -> str:
    return (
        "⚠️ <b>Estado AUSENTE detectado en Slack</b>\n\n"
        f"{_date_lines(now)}\n"
        "Estado: AUSENTE\n\n"
        "Abre Slack para mantenerte activo."
    )


def set_active_failed_message(now: datetime, error: Optional[str]) -> str:
    return (
        "❌ <b>Error al establecer estado ACTIVO</b>\n\n"
        f"{_date_lines(now)}\n"
        f"Error: {html.escape(error or 'unknown')}"
    )


def configuration_error_message() -> str:
    return (
        "🔴 <b>ERROR CRÍTICO: Token de Slack no configurado</b>\n\n"
        "La variable SLACK_TOKEN no está configurada.\n"
        "Configúrala en el archivo .env o en las variables de entorno."
    )


def critical_error_message(error: str, now: datetime, needed_scope: Optional[str] = None) -> str:
    """認証・権限エラー時の対処方法付きアラート"""
    header = f"Fecha: {format_date(now)}\nHora: {format_time_ampm(now)}\nError: {html.escape(str(error))}\n\n"
    if error in ("invalid_auth", "token_revoked"):
        return (
            "🔴 <b>ERROR CRÍTICO: Token de Slack inválido o revocado</b>\n\n"
            + header
            + "El token de Slack ha expirado o fue revocado.\n"
            "Genera un nuevo token en https://api.slack.com/apps"
        )
    if error == "missing_scope":
        return (
            "🔴 <b>ERROR: Token sin permisos necesarios</b>\n\n"
            + header
            + f"El token necesita el scope: {html.escape(needed_scope or 'users:write')}\n"
            "Agrega el scope en https://api.slack.com/apps"
        )
    return (
        "🔴 <b>ERROR CRÍTICO en Slack API</b>\n\n"
        + header
        + "Revisa la configuración del token."
    )
