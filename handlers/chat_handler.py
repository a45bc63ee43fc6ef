# handlers/chat_handler.py
import html
from dataclasses import dataclass
from typing import Optional

from graph.nodes.presence_helpers import SETTLE_DELAY_SECONDS, presence_value, settle_and_read
from handlers.commands import (
    BOT_COMMANDS,
    INLINE_KEYBOARD,
    REPLY_KEYBOARD,
    Command,
    parse_command,
)
from services.messages import critical_error_message, presence_label
from services.schedule import (
    OffHoursReason,
    format_date,
    format_hour_ampm,
    format_time_ampm,
    weekday_name,
)
from utils.logger import get_logger

logger = get_logger(__name__)

OFF_HOURS_LABELS = {
    OffHoursReason.WEEKEND: "fin de semana",
    OffHoursReason.HOLIDAY: "día festivo",
    OffHoursReason.BEFORE_START: "antes del inicio de jornada",
    OffHoursReason.LUNCH: "hora de almuerzo",
    OffHoursReason.AFTER_END: "jornada terminada",
}


@dataclass
class ChatEvent:
    kind: str                           # "message" / "callback"
    chat_id: str
    text: str
    message_id: Optional[int] = None
    callback_id: Optional[str] = None


@dataclass
class Reply:
    text: str
    reply_keyboard: Optional[list] = None
    inline_keyboard: Optional[list] = None


def parse_chat_event(payload: dict) -> Optional[ChatEvent]:
    """Telegramのupdateをメッセージ/ボタン押下イベントに変換する"""
    callback = payload.get("callback_query")
    if callback:
        message = callback.get("message") or {}
        chat = message.get("chat") or {}
        if "id" not in chat:
            return None
        return ChatEvent(
            kind="callback",
            chat_id=str(chat["id"]),
            text=callback.get("data") or "",
            message_id=message.get("message_id"),
            callback_id=callback.get("id"),
        )

    message = payload.get("message")
    if message:
        chat = message.get("chat") or {}
        if "id" not in chat:
            return None
        return ChatEvent(
            kind="message",
            chat_id=str(chat["id"]),
            text=message.get("text") or "",
            message_id=message.get("message_id"),
        )

    return None


def is_authorized(event: ChatEvent, allowed_chat_id: Optional[str]) -> bool:
    """許可チャットが設定されていれば一致するかを確認"""
    if not allowed_chat_id:
        return True
    return event.chat_id == str(allowed_chat_id)


class ChatCommandHandler:
    """チャットから届いたコマンドを実行し、結果を1通返信する"""

    def __init__(
        self,
        oracle,
        presence,
        notifier,
        allowed_chat_id: Optional[str] = None,
        settle_seconds: float = SETTLE_DELAY_SECONDS,
    ):
        self._oracle = oracle
        self._presence = presence
        self._notifier = notifier
        self._allowed_chat_id = str(allowed_chat_id) if allowed_chat_id else None
        self._settle_seconds = settle_seconds
        self._routes = {
            Command.START: self._start,
            Command.HELP: self._help,
            Command.STATUS: self._status,
            Command.SET_ACTIVE: self._set_active,
            Command.SET_AWAY: self._set_away,
            Command.INFO: self._info,
            Command.SCHEDULE: self._schedule,
            Command.SET_SCHEDULE: self._set_schedule,
            Command.TEST: self._test,
        }

    async def handle(self, payload: dict) -> dict:
        """受信ペイロード1件を処理して結果（status_code + body）を返す"""
        event = parse_chat_event(payload)
        if event is None:
            return {"status_code": 200, "body": {"message": "Evento ignorado"}}

        if not is_authorized(event, self._allowed_chat_id):
            logger.warning(f"許可されていないチャットからのメッセージを無視しました: {event.chat_id}")
            return {"status_code": 200, "body": {"message": "OK"}}

        if event.kind == "callback" and event.callback_id:
            await self._notifier.acknowledge_callback(event.callback_id)

        command = parse_command(event.text)
        logger.info(f"コマンド受信: {command.value} (chat={event.chat_id})")

        status_code = 200
        try:
            route = self._routes.get(command, self._unknown)
            reply = await route(event)
        except Exception as e:
            logger.exception(f"コマンド実行中にエラー: {command.value}")
            reply = Reply(text=f"❌ <b>Error interno</b>\n\n{html.escape(str(e))}")
            status_code = 500

        sent = await self._notifier.send(
            reply.text,
            chat_id=event.chat_id,
            reply_to=event.message_id if event.kind == "message" else None,
            reply_keyboard=reply.reply_keyboard,
            inline_keyboard=reply.inline_keyboard,
        )
        return {
            "status_code": status_code,
            "body": {"command": command.value, "sent": sent},
        }

    def _error_text(self, result, action: str) -> str:
        if result.is_critical:
            return critical_error_message(result.error, self._oracle.now(), result.needed_scope)
        return f"❌ <b>Error al {action}</b>\n\nError: {html.escape(str(result.error))}"

    async def _start(self, event: ChatEvent) -> Reply:
        return Reply(
            text=(
                "👋 <b>Slack Presence Bot</b>\n\n"
                "Mantengo tu estado de Slack según tu horario laboral.\n"
                "Usa los botones de abajo o escribe /help para ver los comandos."
            ),
            reply_keyboard=REPLY_KEYBOARD,
        )

    async def _help(self, event: ChatEvent) -> Reply:
        lines = ["📖 <b>Comandos disponibles</b>", ""]
        lines += [f"/{command} - {description}" for command, description in BOT_COMMANDS]
        lines += ["", "También puedes escribir: estado, activo, ausente, horario, info, test."]
        return Reply(text="\n".join(lines), inline_keyboard=INLINE_KEYBOARD)

    async def _status(self, event: ChatEvent) -> Reply:
        result = await self._presence.get_presence()
        if not result.ok:
            return Reply(text=self._error_text(result, "obtener el estado"))

        now = self._oracle.now()
        reason = await self._oracle.off_hours_reason(now)
        working = "Sí" if reason is None else f"No ({OFF_HOURS_LABELS[reason]})"
        text = (
            "📊 <b>Estado de Slack</b>\n\n"
            f"Estado: {presence_label(result.presence)}\n"
            f"Online: {'Sí' if result.online else 'No'}\n"
            f"Conexiones: {result.connection_count}\n"
            f"Horario laboral: {working}\n"
            f"Hora: {format_time_ampm(now)}"
        )
        return Reply(text=text, inline_keyboard=INLINE_KEYBOARD[:1])

    async def _force(self, value: str) -> Reply:
        result = await self._presence.set_presence(value)
        if not result.ok:
            return Reply(text=self._error_text(result, f"establecer estado {presence_label(value)}"))

        after = await settle_and_read(self._presence, self._settle_seconds)
        current = presence_value(after)
        text = f"✅ Estado {presence_label(value)} establecido\n\nEstado actual: {presence_label(current)}"
        if current != value:
            text += "\n⚠️ Slack aún no refleja el cambio."
        return Reply(text=text)

    async def _set_active(self, event: ChatEvent) -> Reply:
        return await self._force("active")

    async def _set_away(self, event: ChatEvent) -> Reply:
        return await self._force("away")

    async def _info(self, event: ChatEvent) -> Reply:
        now = self._oracle.now()
        holidays = await self._oracle.holiday_calendar.get_holidays(now.year)
        is_holiday = format_date(now) in holidays
        working = await self._oracle.is_working_time(now)
        text = (
            "📋 <b>Información del sistema</b>\n\n"
            f"Zona horaria: {self._oracle.timezone.key}\n"
            f"Fecha: {format_date(now)} ({weekday_name(now)})\n"
            f"Hora: {format_time_ampm(now)}\n"
            f"Horario laboral ahora: {'Sí' if working else 'No'}\n"
            f"Festivo hoy: {'Sí' if is_holiday else 'No'}\n"
            f"Festivos {now.year}: {len(holidays)}\n"
            f"Token de Slack: {'configurado' if self._presence.configured else 'NO configurado'}\n"
            f"Chat autorizado: {self._allowed_chat_id or 'cualquiera'}"
        )
        return Reply(text=text)

    async def _schedule(self, event: ChatEvent) -> Reply:
        s = self._oracle.schedule
        text = (
            "🕐 <b>Horario laboral</b>\n\n"
            f"Inicio: {format_hour_ampm(s.start_hour)}\n"
            f"Almuerzo: {format_hour_ampm(s.lunch_start_hour)} - {format_hour_ampm(s.lunch_end_hour)}\n"
            f"Fin: {format_hour_ampm(s.end_hour)}\n"
            "Días: Lunes a Viernes (excepto festivos)\n"
            f"Zona horaria: {self._oracle.timezone.key}"
        )
        return Reply(text=text)

    async def _set_schedule(self, event: ChatEvent) -> Reply:
        s = self._oracle.schedule
        text = (
            "⚙️ <b>Configurar horario</b>\n\n"
            "El horario se define con variables de entorno (o en config.yaml → schedule):\n\n"
            f"HORA_INICIO={s.start_hour}\n"
            f"HORA_FIN={s.end_hour}\n"
            f"HORA_ALMUERZO_INICIO={s.lunch_start_hour}\n"
            f"HORA_ALMUERZO_FIN={s.lunch_end_hour}\n\n"
            "Cambia los valores (0-23) y reinicia el servicio para aplicarlos."
        )
        return Reply(text=text)

    async def _test(self, event: ChatEvent) -> Reply:
        result = await self._presence.get_presence()
        if not result.ok:
            return Reply(text=self._error_text(result, "conectar con Slack"))
        return Reply(
            text=(
                "🔌 <b>Conexión con Slack OK</b>\n\n"
                f"Estado: {presence_label(result.presence)}\n"
                f"Conexiones: {result.connection_count}"
            )
        )

    async def _unknown(self, event: ChatEvent) -> Reply:
        return Reply(
            text=(
                f"🤔 Comando no reconocido: {html.escape(event.text)}\n\n"
                "Escribe /help para ver los comandos disponibles."
            ),
            reply_keyboard=REPLY_KEYBOARD,
        )
