"""
ロギング設定モジュール

ファイル + 標準出力へ出力する。HTTPクライアント系ライブラリのログは
WARNING 以上に絞る。
"""

import logging
from pathlib import Path
from typing import Iterable

NOISY_LOGGERS = ("urllib3", "httpx", "httpcore")


def setup_logger(
    log_level: str = "INFO",
    log_file: str = "logs/tasktide.log",
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    ロガーのセットアップ

    Args:
        log_level: ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: ログファイルのパス
        quiet: WARNING 以上のみ出力するロガー名
    """
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
