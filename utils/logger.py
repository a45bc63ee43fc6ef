import logging
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False


def _init_logging(level: int = logging.INFO) -> None:
    """ルートロガーを一度だけ設定する"""
    global _initialized
    if _initialized:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """名前付きロガーを返す（各モジュールから get_logger(__name__) で利用）"""
    _init_logging()
    return logging.getLogger(name)
