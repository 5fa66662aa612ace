"""Structured logging for the flashcards app.

structlog を標準 logging の上に JSON 出力で構成する。イベントには ID と
スケジューリング値だけを載せ、カード本文 (front/back) と秘密情報は
レンダリング前のプロセッサで取り除く／マスクする。
"""

from typing import Any

import logging
import structlog
from structlog import contextvars as structlog_contextvars
from .config import Settings, settings


_SECRET_KEY_PARTS = ("dsn", "token", "secret", "authorization", "password", "api_key")
_CARD_CONTENT_KEYS = frozenset({"front", "back"})
_REDACTED = "***"


def mask_secret(raw: object, *, keep: int = 4) -> str:
    """Mask a secret-like value, keeping `keep` characters at each end.

    `keep * 2` 文字以下の値は全体を `***` に置き換える。
    """

    if raw is None:
        return _REDACTED
    text = str(raw).strip()
    if len(text) <= keep * 2:
        return _REDACTED
    return f"{text[:keep]}…{text[-keep:]}"


def _looks_secret(key: str) -> bool:
    name = key.lower()
    return any(part in name for part in _SECRET_KEY_PARTS)


def _drop_card_content(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # 学習内容は個人データとして扱い、ログには残さない
    for key in _CARD_CONTENT_KEYS & event_dict.keys():
        event_dict.pop(key)
    return event_dict


class _SecretMasker:
    """Mask secret-looking fields and inline occurrences of the configured Sentry DSN.

    ネストした dict はキー名を見ながら再帰的に処理する。
    """

    def __init__(self, dsn: str | None) -> None:
        self.dsn = dsn

    def __call__(
        self,
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        return {key: self._clean(value, str(key)) for key, value in event_dict.items()}

    def _clean(self, value: Any, key: str) -> Any:
        if isinstance(value, dict):
            return {k: self._clean(v, str(k)) for k, v in value.items()}
        if self.dsn and isinstance(value, str) and self.dsn in value:
            value = value.replace(self.dsn, mask_secret(self.dsn))
        return mask_secret(value) if _looks_secret(key) else value


def _init_sentry(config: Settings) -> None:
    try:
        import sentry_sdk  # type: ignore
        from sentry_sdk.integrations.logging import LoggingIntegration  # type: ignore
    except ImportError:
        logger.warning("sentry_unavailable", reason="install the 'sentry' extra")
        return
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        environment=config.environment,
        integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
    )


def configure_logging(config: Settings | None = None, *, level: str | None = None) -> None:
    """Configure structlog JSON output for the whole process.

    標準 logging を `%(message)s` だけのフォーマットで初期化し（uvicorn 等の
    既存ハンドラは force=True で置き換える）、structlog から JSON 1 行ずつ出す。
    ログレベル・マスク対象の DSN・Sentry は `config`（省略時はモジュールの
    `settings`）から取る。`level` を渡すと config のレベルより優先する。
    """
    config = config or settings
    logging.basicConfig(
        level=(level or config.log_level).upper(),
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog_contextvars.merge_contextvars,
            _drop_card_content,
            _SecretMasker(config.sentry_dsn),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    if config.sentry_dsn:
        _init_sentry(config)


logger = structlog.get_logger()
