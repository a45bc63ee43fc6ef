# services/slack_presence.py
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import aiohttp
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from utils.logger import get_logger

logger = get_logger(__name__)

CRITICAL_ERRORS = frozenset(
    {
        "invalid_auth",
        "token_revoked",
        "account_inactive",
        "missing_scope",
        "not_authed",
    }
)

TOKEN_MISSING = "token_missing"


class PresenceState(str, Enum):
    ACTIVE = "active"
    AWAY = "away"
    ERROR = "error"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PresenceState":
        try:
            return cls(value)
        except ValueError:
            return cls.ERROR


def is_critical_error(error: Optional[str]) -> bool:
    """認証・権限系のエラーかどうか"""
    return error in CRITICAL_ERRORS


@dataclass
class PresenceResult:
    ok: bool
    presence: PresenceState = PresenceState.ERROR
    online: bool = False
    connection_count: int = 0
    error: Optional[str] = None
    needed_scope: Optional[str] = None

    @property
    def is_critical(self) -> bool:
        return is_critical_error(self.error)


@dataclass
class SetPresenceResult:
    ok: bool
    error: Optional[str] = None
    needed_scope: Optional[str] = None

    @property
    def is_critical(self) -> bool:
        return is_critical_error(self.error)


class SlackPresenceService:
    """Slack APIでプレゼンス（active / away）を取得・設定する"""

    def __init__(self, token: str, timeout: int = 5, client: AsyncWebClient = None):
        self._token = token
        self._client = client
        if self._client is None and token:
            self._client = AsyncWebClient(token=token, timeout=timeout)

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def get_presence(self) -> PresenceResult:
        """現在のプレゼンスを取得"""
        if self._client is None:
            logger.error("SLACK_TOKEN が設定されていません")
            return PresenceResult(ok=False, error=TOKEN_MISSING)

        try:
            response = await self._client.users_getPresence()
        except SlackApiError as e:
            error = e.response.get("error", "unknown")
            logger.error(f"Slack APIエラー(users.getPresence): {error}")
            return PresenceResult(ok=False, error=error, needed_scope=e.response.get("needed"))
        except (SlackClientError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Slack接続エラー(users.getPresence): {e}")
            return PresenceResult(ok=False, error=f"connection_error: {e}")

        online = bool(response.get("online", False))
        connection_count = int(response.get("connection_count", 0) or 0)
        if not online and connection_count == 0:
            logger.warning("Slackがアクティブなセッションを検出していません（online=false, connections=0）")

        return PresenceResult(
            ok=True,
            presence=PresenceState.parse(response.get("presence")),
            online=online,
            connection_count=connection_count,
        )

    async def set_presence(self, value: str) -> SetPresenceResult:
        """プレゼンスを設定（activeはSlack側の auto として送る）"""
        if value not in ("active", "away"):
            raise ValueError(f"不正なプレゼンス: {value}")
        if self._client is None:
            logger.error("SLACK_TOKEN が設定されていません")
            return SetPresenceResult(ok=False, error=TOKEN_MISSING)

        presence = "auto" if value == "active" else "away"
        try:
            await self._client.users_setPresence(presence=presence)
        except SlackApiError as e:
            error = e.response.get("error", "unknown")
            needed = e.response.get("needed")
            if error == "missing_scope":
                logger.error(f"Slackトークンに必要な権限がありません: {needed}")
            else:
                logger.error(f"プレゼンス設定エラー: {error}")
            return SetPresenceResult(ok=False, error=error, needed_scope=needed)
        except (SlackClientError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Slack接続エラー(users.setPresence): {e}")
            return SetPresenceResult(ok=False, error=f"connection_error: {e}")

        logger.info(f"プレゼンスを {value} に設定しました")
        return SetPresenceResult(ok=True)
