from datetime import datetime
from typing import Optional, TypedDict


class TickState(TypedDict):
    now: datetime                       # 設定タイムゾーンでの評価時刻
    moment_action: str                  # MomentAction の値
    is_working_time: bool               # 勤務時間内か
    off_hours_reason: Optional[str]     # 勤務時間外の理由
    presence_before: Optional[str]      # 処理前のプレゼンス
    presence_after: Optional[str]       # 処理後のプレゼンス
    action_taken: Optional[str]         # 実行した処理
    status_code: int                    # 200 / 500
    message: Optional[str]              # 結果の説明
    error_message: Optional[str]        # エラー詳細
    extra: dict                         # 任意の追加データ


def initial_state(now: datetime) -> TickState:
    return {
        "now": now,
        "moment_action": "none",
        "is_working_time": False,
        "off_hours_reason": None,
        "presence_before": None,
        "presence_after": None,
        "action_taken": None,
        "status_code": 200,
        "message": None,
        "error_message": None,
        "extra": {},
    }
