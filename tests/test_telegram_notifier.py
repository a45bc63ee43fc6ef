from unittest.mock import AsyncMock, patch

import pytest
from telegram import InlineKeyboardMarkup, ReplyKeyboardMarkup
from telegram.constants import ParseMode
from telegram.error import NetworkError, TelegramError

from services.telegram_notifier import ConsoleNotifier, TelegramNotifier, build_reply_markup


@pytest.mark.asyncio
async def test_console_notifier_send():
    """ConsoleNotifierがメッセージをログ出力すること"""
    notifier = ConsoleNotifier()
    with patch("services.telegram_notifier.logger") as mock_logger:
        result = await notifier.send("テストメッセージ")
    assert result is True
    mock_logger.info.assert_called_once()


@pytest.mark.asyncio
async def test_console_notifier_send_error():
    notifier = ConsoleNotifier()
    assert await notifier.send_error("エラー内容") is True
    assert await notifier.send_alert("アラート") is True


@pytest.mark.asyncio
async def test_telegram_send_success():
    """設定済みチャットにHTMLで送信すること"""
    bot = AsyncMock()
    notifier = TelegramNotifier(chat_id="12345", bot=bot)

    result = await notifier.send("<b>hola</b>")

    assert result is True
    bot.send_message.assert_awaited_once()
    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == "12345"
    assert kwargs["text"] == "<b>hola</b>"
    assert kwargs["parse_mode"] == ParseMode.HTML
    assert kwargs["reply_parameters"] is None
    assert kwargs["reply_markup"] is None


@pytest.mark.asyncio
async def test_telegram_send_reply_to_other_chat():
    """宛先と返信先を指定できること"""
    bot = AsyncMock()
    notifier = TelegramNotifier(chat_id="12345", bot=bot)

    await notifier.send("ok", chat_id="999", reply_to=42, reply_keyboard=[["📊 Estado"]])

    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == "999"
    assert kwargs["reply_parameters"].message_id == 42
    assert isinstance(kwargs["reply_markup"], ReplyKeyboardMarkup)


@pytest.mark.asyncio
async def test_telegram_send_failure():
    """Telegram API失敗時にFalseを返すこと"""
    bot = AsyncMock()
    bot.send_message.side_effect = TelegramError("Bad Request")
    notifier = TelegramNotifier(chat_id="12345", bot=bot)

    assert await notifier.send("テスト通知") is False


@pytest.mark.asyncio
async def test_telegram_not_configured():
    """トークン・チャット未設定なら送信しないこと"""
    notifier = TelegramNotifier(token="", chat_id="")
    assert await notifier.send("テスト") is False
    assert await notifier.register_commands([("status", "Estado")]) is False
    assert await notifier.acknowledge_callback("cb-1") is False


@pytest.mark.asyncio
async def test_register_commands_with_chat_scope():
    """チャット限定でコマンドを登録できること"""
    bot = AsyncMock()
    notifier = TelegramNotifier(chat_id="12345", bot=bot)

    assert await notifier.register_commands([("status", "Ver estado")], scope_chat_id="12345") is True

    kwargs = bot.set_my_commands.await_args.kwargs
    assert str(kwargs["scope"].chat_id) == "12345"
    commands = bot.set_my_commands.await_args.args[0]
    assert [c.command for c in commands] == ["status"]


@pytest.mark.asyncio
async def test_acknowledge_callback():
    bot = AsyncMock()
    notifier = TelegramNotifier(bot=bot)
    assert await notifier.acknowledge_callback("cb-1") is True
    bot.answer_callback_query.assert_awaited_once_with(callback_query_id="cb-1")


@pytest.mark.asyncio
async def test_external_bot_is_not_initialized():
    """外部から渡したBotのライフサイクルには触れないこと"""
    bot = AsyncMock()
    async with TelegramNotifier(bot=bot):
        pass
    bot.initialize.assert_not_awaited()
    bot.shutdown.assert_not_awaited()


def test_build_reply_markup_prefers_inline():
    markup = build_reply_markup(
        reply_keyboard=[["Estado"]],
        inline_keyboard=[[("🟢 Activo", "setactive")]],
    )
    assert isinstance(markup, InlineKeyboardMarkup)
    assert markup.inline_keyboard[0][0].callback_data == "setactive"
    assert build_reply_markup() is None


@pytest.mark.asyncio
async def test_telegram_send_error_escapes_html():
    """エラー文中のHTML記号をエスケープすること"""
    bot = AsyncMock()
    notifier = TelegramNotifier(chat_id="12345", bot=bot)

    assert await notifier.send_error("<bad & error>") is True

    text = bot.send_message.await_args.kwargs["text"]
    assert "&lt;bad &amp; error&gt;" in text
    assert text.startswith("❌ <b>Error</b>")


@pytest.mark.asyncio
async def test_telegram_initialize_failure_degrades():
    """ボット初期化に失敗したら送信をスキップしてFalseを返すこと"""
    with patch("telegram.Bot.initialize", AsyncMock(side_effect=NetworkError("telegram down"))):
        async with TelegramNotifier(token="123:abc", chat_id="12345") as notifier:
            assert await notifier.send("hola") is False
            assert await notifier.register_commands([("status", "Estado")]) is False
