"""ID 生成ユーティリティ。

デッキ・カード・レビュー履歴の ID は種類が一目で分かるよう prefix を付けた
UUID とする（例: "card:3f2a..."）。
"""

from __future__ import annotations

import uuid


def _generate(prefix: str) -> str:
    return f"{prefix}:{uuid.uuid4().hex}"


def generate_deck_id() -> str:
    return _generate("deck")


def generate_card_id() -> str:
    return _generate("card")


def generate_review_log_id() -> str:
    return _generate("log")
