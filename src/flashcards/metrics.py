"""In-process metrics served by `GET /metrics`.

- リクエスト: ルートテンプレート単位の遅延 p95・件数・5xx/タイムアウト・ステータスクラス別件数
- 採点: 合格 (q >= 3) と lapse の件数

カード/デッキ ID は系列キーに含めない（`route_key` でテンプレートに戻す）。
"""

from __future__ import annotations

import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Mapping, Sequence

from .scheduler import is_lapse


UNMATCHED_ROUTE = "<unmatched>"


def route_key(path: str, path_params: Mapping[str, object]) -> str:
    """Turn a concrete request path back into its route template.

    `/api/cards/card:1f2e/review` with `{"card_id": "card:1f2e"}` becomes
    `/api/cards/{card_id}/review`.
    """
    if not path_params:
        return path
    names_by_value = {str(value): name for name, value in path_params.items()}
    segments = [
        f"{{{names_by_value[segment]}}}" if segment in names_by_value else segment
        for segment in path.split("/")
    ]
    return "/".join(segments)


def percentile(values: Sequence[float], fraction: float) -> float:
    """Nearest-rank (lower) percentile; 0.0 for no samples."""
    if not values:
        return 0.0
    ordered = sorted(values)
    return ordered[int(fraction * (len(ordered) - 1))]


@dataclass
class _RouteStats:
    latencies_ms: Deque[float]
    total: int = 0
    errors: int = 0
    timeouts: int = 0
    status_classes: Counter = field(default_factory=Counter)


class MetricsRegistry:
    def __init__(self, window_size: int = 200) -> None:
        self._window_size = window_size
        self._lock = threading.Lock()
        self._routes: dict[str, _RouteStats] = {}
        self._reviews: Counter = Counter()

    def record_request(
        self,
        route: str,
        latency_ms: float,
        *,
        status_code: int,
        is_timeout: bool = False,
    ) -> None:
        with self._lock:
            stats = self._routes.get(route)
            if stats is None:
                stats = _RouteStats(latencies_ms=deque(maxlen=self._window_size))
                self._routes[route] = stats
            stats.latencies_ms.append(latency_ms)
            stats.total += 1
            stats.status_classes[f"{status_code // 100}xx"] += 1
            if status_code >= 500:
                stats.errors += 1
            if is_timeout:
                stats.timeouts += 1

    def record_review(self, quality: int) -> None:
        with self._lock:
            self._reviews["lapses" if is_lapse(quality) else "passes"] += 1

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            paths = {
                route: {
                    "p95_ms": round(percentile(list(stats.latencies_ms), 0.95), 2),
                    "count": stats.total,
                    "errors": stats.errors,
                    "timeouts": stats.timeouts,
                    "status": dict(stats.status_classes),
                }
                for route, stats in self._routes.items()
            }
            passes = self._reviews["passes"]
            lapses = self._reviews["lapses"]
        return {
            "paths": paths,
            "reviews": {"total": passes + lapses, "passes": passes, "lapses": lapses},
        }

    def reset(self) -> None:
        with self._lock:
            self._routes.clear()
            self._reviews.clear()


registry = MetricsRegistry()
