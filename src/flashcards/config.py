from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DB_PATH = ".data/flashcards.sqlite3"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - environment: 実行環境（development/staging/production など）
    - store_backend: 永続化バックエンド（sqlite / memory）
    - flashcards_db_path: SQLite ファイルの保存先
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )

    # --- 永続化 ---
    store_backend: Literal["sqlite", "memory"] = Field(
        default="sqlite",
        description="Persistence backend (sqlite|memory) / 永続化バックエンド",
    )
    flashcards_db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Path to flashcards SQLite database / カード用SQLite DBパス",
    )
    sqlite_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Busy timeout for SQLite writers (s) / SQLite 書き込み待ちタイムアウト(秒)",
    )

    # --- HTTP ---
    host: str = Field(default="127.0.0.1", description="Bind address / 待ち受けアドレス")
    port: int = Field(default=8000, description="Bind port / 待ち受けポート")
    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Allowed CORS origins (comma separated) / 許可する CORS オリジン",
    )

    # --- Operations/Observability ---
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Root log level / ログレベル",
    )
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN (enable if set)")

    # --- Strict mode ---
    strict_mode: bool = Field(
        default=True,
        description="Fail fast on missing/invalid configuration (disable only for tests)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("flashcards_db_path", mode="after")
    @classmethod
    def _reject_memory_database(cls, value: str) -> str:
        """Reject SQLite's `:memory:` path.

        接続ごとに別の DB になってしまうため、インメモリ運用は
        STORE_BACKEND=memory を使う。
        """

        cleaned = value.strip()
        if not cleaned:
            raise ValueError("FLASHCARDS_DB_PATH must not be empty")
        if cleaned == ":memory:":
            raise ValueError("use STORE_BACKEND=memory instead of FLASHCARDS_DB_PATH=:memory:")
        return cleaned

    @field_validator("log_level", mode="before")
    @classmethod
    def _lower_log_level(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(cls, value: object) -> tuple[str, ...]:
        """Accept comma separated strings or iterables and drop blanks/duplicates."""

        if value is None:
            return ()
        if isinstance(value, str):
            candidates: list[object] = list(value.split(","))
        elif isinstance(value, (list, tuple, set, frozenset)):
            candidates = list(value)
        else:
            raise TypeError("allowed_cors_origins must be a string or a sequence")

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip().rstrip("/")
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)
        return tuple(normalised)

    @model_validator(mode="after")
    def _validate_strict_backend(self) -> "Settings":
        """Refuse a volatile store in production when strict mode is on.

        memory バックエンドはプロセス終了で復習履歴が失われる。本番では
        STRICT_MODE=false を明示したときだけ許可する。
        """

        environment_name = (self.environment or "").strip().lower()
        if self.strict_mode and environment_name == "production" and self.store_backend == "memory":
            raise ValueError("STORE_BACKEND=memory is not allowed in production with STRICT_MODE=true")
        return self


settings = Settings()
