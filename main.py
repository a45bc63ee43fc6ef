"""Slack在席エージェント - エントリーポイント"""
import argparse
import asyncio
import json
import os
import signal
import sys
import time
from datetime import datetime

from dotenv import load_dotenv

from graph.graph import build_graph
from graph.state import initial_state
from handlers.chat_handler import ChatCommandHandler
from handlers.commands import BOT_COMMANDS
from schedulers.scheduler import PresenceScheduler
from services.config_loader import load_config
from services.holiday_calendar import HolidayCache, HolidayCalendar, NagerHolidaySource
from services.messages import configuration_error_message
from services.schedule import ScheduleConfig, ScheduleOracle, format_time_ampm
from services.slack_presence import SlackPresenceService
from services.telegram_notifier import ConsoleNotifier, TelegramNotifier
from utils.logger import get_logger

logger = get_logger(__name__)


def create_oracle(config: dict) -> ScheduleOracle:
    """設定から勤務時間判定サービスを生成（祝日キャッシュはプロセス内で共有）"""
    hol = config["holidays"]
    calendar = HolidayCalendar(
        source=NagerHolidaySource(
            country=hol["country"],
            api_url=hol["api_url"],
            timeout=hol["timeout_seconds"],
        ),
        cache=HolidayCache(ttl_seconds=hol["cache_hours"] * 60 * 60),
    )
    return ScheduleOracle(
        schedule=ScheduleConfig.from_config(config),
        holiday_calendar=calendar,
        timezone=config["schedule"]["timezone"],
    )


def create_presence(config: dict) -> SlackPresenceService:
    return SlackPresenceService(
        token=os.getenv("SLACK_TOKEN", ""),
        timeout=config["slack"]["timeout_seconds"],
    )


def create_notifier(config: dict, bot=None):
    """設定に基づいて通知サービスを生成"""
    tg_config = config["telegram"]
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")
    chat_id = os.getenv("TELEGRAM_CHAT_ID", "")
    if tg_config["enabled"] and (token or bot is not None):
        return TelegramNotifier(
            token=token,
            chat_id=chat_id,
            timeout=tg_config["timeout_seconds"],
            bot=bot,
        )
    return ConsoleNotifier()


def _to_result(state: dict) -> dict:
    """最終状態を status_code + body の結果に変換"""
    return {
        "status_code": state["status_code"],
        "body": {
            "message": state["message"],
            "hora": format_time_ampm(state["now"]),
            "momento": state["moment_action"],
            "fuera_de_horario": state["off_hours_reason"],
            "estado_antes": state["presence_before"],
            "estado_despues": state["presence_after"],
            "accion": state["action_taken"],
            "error": state["error_message"],
        },
    }


async def run_tick(oracle, presence, notifier, config: dict, now: datetime = None) -> dict:
    """タイマー起動1回分の評価を実行（例外は結果に変換して返す）"""
    now = oracle.localize(now) if now else oracle.now()

    if not presence.configured:
        logger.error("SLACK_TOKEN が設定されていません")
        await notifier.send_alert(configuration_error_message())
        return {
            "status_code": 500,
            "body": {"message": "SLACK_TOKEN no configurado", "hora": format_time_ampm(now), "accion": "error"},
        }

    graph = build_graph(
        oracle=oracle,
        presence=presence,
        notifier=notifier,
        settle_seconds=config["slack"]["settle_delay_seconds"],
    )
    try:
        final_state = await graph.ainvoke(initial_state(now))
    except Exception as e:
        logger.exception("評価中にエラーが発生しました")
        await notifier.send_error(str(e))
        return {
            "status_code": 500,
            "body": {"message": f"Error: {e}", "hora": format_time_ampm(now), "accion": "error"},
        }

    result = _to_result(final_state)
    logger.info(f"評価結果: {result['body']['accion']} ({result['status_code']})")
    return result


async def tick_once(oracle, config: dict) -> dict:
    """呼び出しごとにクライアントを生成して1回評価する"""
    presence = create_presence(config)
    async with create_notifier(config) as notifier:
        return await run_tick(oracle, presence, notifier, config)


async def register_commands(config: dict) -> bool:
    """コマンド一覧をTelegramに登録"""
    chat_id = os.getenv("TELEGRAM_CHAT_ID", "")
    async with create_notifier(config) as notifier:
        ok = await notifier.register_commands(BOT_COMMANDS)
        if ok and chat_id:
            ok = await notifier.register_commands(BOT_COMMANDS, scope_chat_id=chat_id)
    if ok:
        logger.info("Telegramにコマンドを登録しました")
    return ok


def _run_bot(oracle, config: dict) -> bool:
    """Telegramのロングポーリングを開始（トークン未設定ならFalse）"""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")
    if not (config["telegram"]["enabled"] and token):
        return False

    from telegram import Update
    from telegram.ext import Application, ContextTypes, TypeHandler

    chat_id = os.getenv("TELEGRAM_CHAT_ID", "")

    async def on_update(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        handler = ChatCommandHandler(
            oracle=oracle,
            presence=create_presence(config),
            notifier=create_notifier(config, bot=context.bot),
            allowed_chat_id=chat_id,
            settle_seconds=config["slack"]["settle_delay_seconds"],
        )
        await handler.handle(update.to_dict())

    app = Application.builder().token(token).build()
    app.add_handler(TypeHandler(Update, on_update))
    logger.info("Telegramボットを起動しました")
    app.run_polling(allowed_updates=["message", "callback_query"], drop_pending_updates=True)
    return True


def serve(config: dict):
    """定期評価とTelegramボットを起動"""
    oracle = create_oracle(config)
    interval = config["scheduler"]["check_interval_minutes"]

    def check_job():
        try:
            asyncio.run(tick_once(oracle, config))
        except Exception:
            logger.exception("定期チェック中にエラーが発生しました")

    scheduler = PresenceScheduler(
        interval_minutes=interval,
        job_func=check_job,
        timezone=config["schedule"]["timezone"],
    )
    scheduler.start()
    logger.info(f"{interval}分間隔でチェックを開始します")

    def shutdown(signum, frame):
        logger.info("停止中...")
        scheduler.stop()
        sys.exit(0)

    # ボットはシグナル処理を自前で行うため、終了後にスケジューラを止める
    if _run_bot(oracle, config):
        scheduler.stop()
        return

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)
    logger.info("Ctrl+Cで停止します")
    while True:
        time.sleep(1)


def main(argv=None):
    """メイン起動処理"""
    parser = argparse.ArgumentParser(description="Slack在席エージェント")
    parser.add_argument(
        "mode",
        nargs="?",
        default="serve",
        choices=["serve", "tick", "register-commands"],
    )
    parser.add_argument("--config", default="config.yaml")
    args = parser.parse_args(argv)

    load_dotenv()
    config = load_config(args.config)

    if args.mode == "tick":
        result = asyncio.run(tick_once(create_oracle(config), config))
        print(json.dumps(result, ensure_ascii=False, indent=2))
        return 0 if result["status_code"] == 200 else 1
    if args.mode == "register-commands":
        return 0 if asyncio.run(register_commands(config)) else 1

    serve(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
