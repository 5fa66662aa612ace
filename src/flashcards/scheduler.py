"""SM-2 variant scheduler.

カードの現在状態と採点 (quality 0..5) から次の状態を計算する純粋関数群。
状態は呼び出し側（ストア）が保持し、ここでは何も保持しない。
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from enum import IntEnum


INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_QUALITY = 3
MIN_QUALITY = 0
MAX_QUALITY = 5
MS_PER_DAY = 86_400_000


class Rating(IntEnum):
    """Quality presets offered by the study screen."""

    AGAIN = 1
    OKAY = 3
    EASY = 5


@dataclass(frozen=True)
class NextState:
    new_ease_factor: float
    new_interval: int
    new_repetitions: int


def now_ms() -> int:
    """Current wall clock as epoch milliseconds."""
    return int(time.time() * 1000)


def is_lapse(quality: int) -> bool:
    return quality < PASSING_QUALITY


def round_half_up(value: float) -> int:
    # round() は偶数丸めなので 6.5 -> 6 になってしまう
    return int(math.floor(value + 0.5))


def compute_next_state(ease_factor: float, quality: int, interval: int, repetitions: int) -> NextState:
    """Compute the next scheduling state for a card.

    - ease: EF' = max(1.3, EF + 0.1 - (5-q)*(0.08 + (5-q)*0.02))、合否に関わらず適用
    - q < 3 (lapse): interval=0, repetitions=0
    - q >= 3: repetitions+1、interval は 1 → 3 → round(interval * EF')

    Inputs are not validated; an out-of-range quality only amplifies the
    ease adjustment. Interval growth uses the updated ease factor.
    """
    penalty = MAX_QUALITY - quality
    new_ease_factor = max(MIN_EASE_FACTOR, ease_factor + 0.1 - penalty * (0.08 + penalty * 0.02))

    if is_lapse(quality):
        return NextState(new_ease_factor=new_ease_factor, new_interval=0, new_repetitions=0)

    if repetitions == 0:
        new_interval = 1
    elif repetitions == 1:
        new_interval = 3
    else:
        new_interval = round_half_up(interval * new_ease_factor)
    return NextState(
        new_ease_factor=new_ease_factor,
        new_interval=new_interval,
        new_repetitions=repetitions + 1,
    )


def next_review_at(now: int, interval: int) -> int:
    """Epoch ms at which a card with `interval` days becomes due again."""
    return now + interval * MS_PER_DAY


def days_until_review(next_review: int, now: int) -> int:
    """Whole days until `next_review`, rounded up; 0 once the card is due."""
    if next_review <= now:
        return 0
    return -(-(next_review - now) // MS_PER_DAY)
