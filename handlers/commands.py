# handlers/commands.py
import re
import unicodedata
from enum import Enum


class Command(str, Enum):
    START = "start"
    HELP = "help"
    STATUS = "status"
    SET_ACTIVE = "setactive"
    SET_AWAY = "setaway"
    INFO = "info"
    SCHEDULE = "horario"
    SET_SCHEDULE = "sethorario"
    TEST = "test"
    UNKNOWN = "unknown"


# Telegramの入力補完に登録するコマンド
BOT_COMMANDS = [
    ("start", "Iniciar el bot y ver el menú principal"),
    ("status", "Ver el estado actual de Slack"),
    ("setactive", "Establecer estado ACTIVO en Slack"),
    ("setaway", "Establecer estado AUSENTE en Slack"),
    ("info", "Ver información del sistema"),
    ("horario", "Ver horario laboral configurado"),
    ("sethorario", "Configurar nuevos horarios"),
    ("test", "Probar conexión con Slack"),
    ("help", "Ver ayuda y comandos disponibles"),
]

# 自由入力（正規化後） -> コマンド
TEXT_ALIASES = {
    "start": Command.START,
    "inicio": Command.START,
    "menu": Command.START,
    "help": Command.HELP,
    "ayuda": Command.HELP,
    "comandos": Command.HELP,
    "status": Command.STATUS,
    "estado": Command.STATUS,
    "ver estado": Command.STATUS,
    "setactive": Command.SET_ACTIVE,
    "active": Command.SET_ACTIVE,
    "activo": Command.SET_ACTIVE,
    "activar": Command.SET_ACTIVE,
    "estado activo": Command.SET_ACTIVE,
    "setaway": Command.SET_AWAY,
    "away": Command.SET_AWAY,
    "ausente": Command.SET_AWAY,
    "ausentar": Command.SET_AWAY,
    "estado ausente": Command.SET_AWAY,
    "info": Command.INFO,
    "informacion": Command.INFO,
    "sistema": Command.INFO,
    "horario": Command.SCHEDULE,
    "ver horario": Command.SCHEDULE,
    "schedule": Command.SCHEDULE,
    "sethorario": Command.SET_SCHEDULE,
    "cambiar horario": Command.SET_SCHEDULE,
    "configurar horario": Command.SET_SCHEDULE,
    "test": Command.TEST,
    "probar": Command.TEST,
    "prueba": Command.TEST,
    "probar conexion": Command.TEST,
}

REPLY_KEYBOARD = [
    ["📊 Estado", "🕐 Horario"],
    ["🟢 Activo", "🌙 Ausente"],
    ["📋 Info", "🔌 Test"],
]

INLINE_KEYBOARD = [
    [("🟢 Activo", Command.SET_ACTIVE.value), ("🌙 Ausente", Command.SET_AWAY.value)],
    [("📊 Estado", Command.STATUS.value), ("🕐 Horario", Command.SCHEDULE.value)],
    [("📋 Info", Command.INFO.value), ("🔌 Test", Command.TEST.value)],
]


def normalize_text(text: str) -> str:
    """小文字化・アクセント除去・絵文字や記号の除去"""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = re.sub(r"[^a-z0-9 ]", " ", stripped)
    return " ".join(cleaned.split())


def parse_command(text: str) -> Command:
    """入力テキストをコマンドに変換する（未知ならUNKNOWN）"""
    if not text or not text.strip():
        return Command.UNKNOWN

    text = text.strip()
    if text.startswith("/"):
        # /status@MyBot 引数... -> status
        token = text[1:].split()[0].split("@")[0].lower() if len(text) > 1 else ""
        try:
            command = Command(token)
        except ValueError:
            return Command.UNKNOWN
        return command

    return TEXT_ALIASES.get(normalize_text(text), Command.UNKNOWN)
