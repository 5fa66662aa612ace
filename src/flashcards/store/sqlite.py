from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..logging import logger
from ..models import Card, Deck, ReviewLog


_CARD_COLUMNS = (
    "id, deck_id, front, back, created_at, ease_factor, interval_days, "
    "repetitions, next_review, last_reviewed_at"
)
_LOG_COLUMNS = "id, card_id, deck_id, quality, timestamp, new_ease_factor, new_interval"


def _row_to_card(row: sqlite3.Row) -> Card:
    return Card(
        id=row["id"],
        deck_id=row["deck_id"],
        front=row["front"],
        back=row["back"],
        created_at=int(row["created_at"]),
        ease_factor=float(row["ease_factor"]),
        interval=int(row["interval_days"]),
        repetitions=int(row["repetitions"]),
        next_review=int(row["next_review"]),
        last_reviewed_at=int(row["last_reviewed_at"]) if row["last_reviewed_at"] is not None else None,
    )


def _row_to_deck(row: sqlite3.Row) -> Deck:
    return Deck(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
    )


def _row_to_log(row: sqlite3.Row) -> ReviewLog:
    return ReviewLog(
        id=row["id"],
        card_id=row["card_id"],
        deck_id=row["deck_id"],
        quality=int(row["quality"]),
        timestamp=int(row["timestamp"]),
        new_ease_factor=float(row["new_ease_factor"]),
        new_interval=int(row["new_interval"]),
    )


def _select_card(conn: sqlite3.Connection, card_id: str) -> Card | None:
    row = conn.execute(f"SELECT {_CARD_COLUMNS} FROM cards WHERE id = ?;", (card_id,)).fetchone()
    return _row_to_card(row) if row is not None else None


def _write_card(conn: sqlite3.Connection, card: Card) -> None:
    conn.execute(
        f"""
        INSERT OR REPLACE INTO cards({_CARD_COLUMNS})
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
        """,
        (
            card.id,
            card.deck_id,
            card.front,
            card.back,
            card.created_at,
            card.ease_factor,
            card.interval,
            card.repetitions,
            card.next_review,
            card.last_reviewed_at,
        ),
    )


def _insert_log(conn: sqlite3.Connection, log: ReviewLog) -> None:
    conn.execute(
        f"INSERT INTO review_logs({_LOG_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?);",
        (
            log.id,
            log.card_id,
            log.deck_id,
            log.quality,
            log.timestamp,
            log.new_ease_factor,
            log.new_interval,
        ),
    )


class _SQLiteReviewTransaction:
    """Review handle bound to a connection inside `BEGIN IMMEDIATE`."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_card(self, card_id: str) -> Card | None:
        return _select_card(self._conn, card_id)

    def put_card(self, card: Card) -> None:
        _write_card(self._conn, card)

    def append_review_log(self, log: ReviewLog) -> None:
        _insert_log(self._conn, log)


class SQLiteStore:
    """SQLite-backed persistence for decks, cards and review logs.

    - 時刻はエポックミリ秒の INTEGER で保存（due 判定・並び替えを数値比較で行う）
    - review_logs はカード削除後も残すため外部キーを張らない
    - 採点は BEGIN IMMEDIATE で書き込みを直列化し、カード更新と履歴追加を同一トランザクションにする
    """

    def __init__(self, db_path: str, *, timeout: float = 10.0) -> None:
        self.db_path = db_path
        self.timeout = timeout
        self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path, timeout=self.timeout, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        with conn:  # autocommit on pragma
            conn.execute("pragma journal_mode=WAL;")
            conn.execute("pragma foreign_keys=ON;")
        return conn

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        with self._conn() as conn:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS decks (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        description TEXT,
                        created_at INTEGER NOT NULL,
                        updated_at INTEGER NOT NULL
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cards (
                        id TEXT PRIMARY KEY,
                        deck_id TEXT NOT NULL,
                        front TEXT NOT NULL,
                        back TEXT NOT NULL,
                        created_at INTEGER NOT NULL,
                        ease_factor REAL NOT NULL DEFAULT 2.5,
                        interval_days INTEGER NOT NULL DEFAULT 0,
                        repetitions INTEGER NOT NULL DEFAULT 0,
                        next_review INTEGER NOT NULL,
                        last_reviewed_at INTEGER,
                        FOREIGN KEY(deck_id) REFERENCES decks(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS review_logs (
                        id TEXT PRIMARY KEY,
                        card_id TEXT NOT NULL,
                        deck_id TEXT NOT NULL,
                        quality INTEGER NOT NULL,
                        timestamp INTEGER NOT NULL,
                        new_ease_factor REAL NOT NULL,
                        new_interval INTEGER NOT NULL
                    );
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_cards_deck_next ON cards(deck_id, next_review);")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_logs_card_ts ON review_logs(card_id, timestamp);")

    # --- cards used by the scheduler ---
    def get_card(self, card_id: str) -> Card | None:
        with self._conn() as conn:
            return _select_card(conn, card_id)

    def put_card(self, card: Card) -> None:
        with self._conn() as conn:
            with conn:
                _write_card(conn, card)

    def append_review_log(self, log: ReviewLog) -> None:
        with self._conn() as conn:
            with conn:
                _insert_log(conn, log)

    def get_cards_by_deck(self, deck_id: str) -> list[Card]:
        with self._conn() as conn:
            cur = conn.execute(
                f"SELECT {_CARD_COLUMNS} FROM cards WHERE deck_id = ? ORDER BY id ASC;",
                (deck_id,),
            )
            return [_row_to_card(row) for row in cur.fetchall()]

    @contextmanager
    def review_transaction(self, card_id: str) -> Iterator[_SQLiteReviewTransaction]:
        with self._conn() as conn:
            # BEGIN IMMEDIATE で書き込みロックを先に取得し、同一カードの同時採点を防ぐ
            conn.execute("BEGIN IMMEDIATE;")
            try:
                yield _SQLiteReviewTransaction(conn)
            except BaseException:
                try:
                    conn.execute("ROLLBACK;")
                except sqlite3.Error as rollback_exc:
                    logger.error("review_rollback_failed", card_id=card_id, error=repr(rollback_exc))
                else:
                    logger.info("review_rolled_back", card_id=card_id)
                raise
            conn.execute("COMMIT;")

    # --- decks ---
    def add_deck(self, deck: Deck) -> None:
        with self._conn() as conn:
            with conn:
                conn.execute(
                    "INSERT INTO decks(id, name, description, created_at, updated_at) VALUES (?, ?, ?, ?, ?);",
                    (deck.id, deck.name, deck.description, deck.created_at, deck.updated_at),
                )

    def get_deck(self, deck_id: str) -> Deck | None:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT id, name, description, created_at, updated_at FROM decks WHERE id = ?;",
                (deck_id,),
            ).fetchone()
            return _row_to_deck(row) if row is not None else None

    def put_deck(self, deck: Deck) -> None:
        with self._conn() as conn:
            with conn:
                conn.execute(
                    "UPDATE decks SET name = ?, description = ?, updated_at = ? WHERE id = ?;",
                    (deck.name, deck.description, deck.updated_at, deck.id),
                )

    def list_decks(self) -> list[Deck]:
        with self._conn() as conn:
            cur = conn.execute(
                "SELECT id, name, description, created_at, updated_at FROM decks ORDER BY updated_at DESC, id ASC;"
            )
            return [_row_to_deck(row) for row in cur.fetchall()]

    def delete_deck(self, deck_id: str) -> bool:
        """デッキを削除する。カードは ON DELETE CASCADE で消え、履歴は残る。"""
        with self._conn() as conn:
            with conn:
                cur = conn.execute("DELETE FROM decks WHERE id = ?;", (deck_id,))
                return cur.rowcount > 0

    # --- card management ---
    def add_card(self, card: Card) -> None:
        with self._conn() as conn:
            with conn:
                conn.execute(
                    f"INSERT INTO cards({_CARD_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
                    (
                        card.id,
                        card.deck_id,
                        card.front,
                        card.back,
                        card.created_at,
                        card.ease_factor,
                        card.interval,
                        card.repetitions,
                        card.next_review,
                        card.last_reviewed_at,
                    ),
                )

    def update_card_content(self, card_id: str, *, front: str, back: str) -> Card | None:
        with self._conn() as conn:
            with conn:
                cur = conn.execute(
                    "UPDATE cards SET front = ?, back = ? WHERE id = ?;",
                    (front, back, card_id),
                )
                if cur.rowcount == 0:
                    return None
            return _select_card(conn, card_id)

    def delete_card(self, card_id: str) -> bool:
        with self._conn() as conn:
            with conn:
                cur = conn.execute("DELETE FROM cards WHERE id = ?;", (card_id,))
                return cur.rowcount > 0

    # --- history ---
    def list_review_logs(self, card_id: str) -> list[ReviewLog]:
        with self._conn() as conn:
            cur = conn.execute(
                f"SELECT {_LOG_COLUMNS} FROM review_logs WHERE card_id = ? ORDER BY timestamp ASC, rowid ASC;",
                (card_id,),
            )
            return [_row_to_log(row) for row in cur.fetchall()]

    def close(self) -> None:
        # 接続は操作ごとに開閉しているので保持資源はない
        return None
