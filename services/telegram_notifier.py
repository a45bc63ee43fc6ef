import html
from typing import Optional, Sequence, Union

from telegram import (
    Bot,
    BotCommand,
    BotCommandScopeChat,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    ReplyKeyboardMarkup,
    ReplyParameters,
)
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.request import HTTPXRequest

from utils.logger import get_logger

logger = get_logger(__name__)

ChatId = Union[int, str]
ReplyKeyboard = Sequence[Sequence[str]]
InlineKeyboard = Sequence[Sequence[tuple[str, str]]]


class ConsoleNotifier:
    """ログ出力による通知（Telegram無効時のフォールバック）"""

    async def __aenter__(self) -> "ConsoleNotifier":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        pass

    async def send(
        self,
        text: str,
        chat_id: Optional[ChatId] = None,
        reply_to: Optional[int] = None,
        reply_keyboard: Optional[ReplyKeyboard] = None,
        inline_keyboard: Optional[InlineKeyboard] = None,
    ) -> bool:
        logger.info(f"[通知] {text}")
        return True

    async def send_error(self, error: str, chat_id: Optional[ChatId] = None) -> bool:
        logger.error(f"[エラー通知] {error}")
        return True

    async def send_alert(self, text: str) -> bool:
        logger.critical(f"[アラート] {text}")
        return True

    async def register_commands(
        self, commands: Sequence[tuple[str, str]], scope_chat_id: Optional[ChatId] = None
    ) -> bool:
        logger.info(f"[コマンド登録] {', '.join(c for c, _ in commands)}")
        return True

    async def acknowledge_callback(self, callback_id: str) -> bool:
        return True


def build_reply_markup(
    reply_keyboard: Optional[ReplyKeyboard] = None,
    inline_keyboard: Optional[InlineKeyboard] = None,
):
    """キーボード定義をTelegramのマークアップに変換（インライン優先）"""
    if inline_keyboard:
        return InlineKeyboardMarkup(
            [
                [InlineKeyboardButton(text, callback_data=data) for text, data in row]
                for row in inline_keyboard
            ]
        )
    if reply_keyboard:
        return ReplyKeyboardMarkup([list(row) for row in reply_keyboard], resize_keyboard=True)
    return None


class TelegramNotifier:
    """Telegram Bot APIによる通知サービス"""

    def __init__(
        self,
        token: str = "",
        chat_id: Optional[ChatId] = None,
        timeout: float = 5,
        bot: Bot = None,
    ):
        self._chat_id = chat_id or None
        self._bot = bot
        if self._bot is None and token:
            request = HTTPXRequest(connect_timeout=timeout, read_timeout=timeout, write_timeout=timeout)
            self._bot = Bot(token=token, request=request)
        self._owns_bot = bot is None and self._bot is not None

    @property
    def chat_id(self) -> Optional[ChatId]:
        return self._chat_id

    async def __aenter__(self) -> "TelegramNotifier":
        if self._owns_bot:
            try:
                await self._bot.initialize()
            except TelegramError as e:
                # 初期化に失敗したら未設定扱い（send は False を返す）
                logger.warning(f"Telegramボットの初期化に失敗しました: {e}")
                self._bot = None
                self._owns_bot = False
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_bot:
            await self._bot.shutdown()

    async def send(
        self,
        text: str,
        chat_id: Optional[ChatId] = None,
        reply_to: Optional[int] = None,
        reply_keyboard: Optional[ReplyKeyboard] = None,
        inline_keyboard: Optional[InlineKeyboard] = None,
    ) -> bool:
        """メッセージ送信（失敗時はFalse）"""
        target = chat_id or self._chat_id
        if self._bot is None or not target:
            logger.warning("Telegram未設定のため通知をスキップします（TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID）")
            return False

        try:
            await self._bot.send_message(
                chat_id=target,
                text=text,
                parse_mode=ParseMode.HTML,
                reply_parameters=ReplyParameters(message_id=reply_to) if reply_to else None,
                reply_markup=build_reply_markup(reply_keyboard, inline_keyboard),
            )
        except TelegramError as e:
            logger.error(f"Telegram送信エラー: {e}")
            return False

        logger.info("Telegram通知を送信しました")
        return True

    async def send_error(self, error: str, chat_id: Optional[ChatId] = None) -> bool:
        """エラー通知"""
        return await self.send(f"❌ <b>Error</b>\n\n{html.escape(error)}", chat_id=chat_id)

    async def send_alert(self, text: str) -> bool:
        """重大エラーのアラート（設定済みチャットへ送る）"""
        logger.critical(text)
        return await self.send(text)

    async def register_commands(
        self, commands: Sequence[tuple[str, str]], scope_chat_id: Optional[ChatId] = None
    ) -> bool:
        """コマンド一覧をTelegramに登録（入力補完用）"""
        if self._bot is None:
            logger.warning("TELEGRAM_BOT_TOKEN が未設定のためコマンド登録をスキップします")
            return False

        scope = BotCommandScopeChat(chat_id=scope_chat_id) if scope_chat_id else None
        try:
            await self._bot.set_my_commands(
                [BotCommand(command, description) for command, description in commands],
                scope=scope,
            )
        except TelegramError as e:
            logger.error(f"コマンド登録エラー: {e}")
            return False
        return True

    async def acknowledge_callback(self, callback_id: str) -> bool:
        """ボタン押下に応答してローディング表示を消す"""
        if self._bot is None:
            return False
        try:
            await self._bot.answer_callback_query(callback_query_id=callback_id)
        except TelegramError as e:
            logger.warning(f"コールバック応答エラー: {e}")
            return False
        return True
