from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Degradation:
    level: int
    warnings: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.level > 0


# Feeds whose loss removes a whole richness signal weigh more than
# feeds with a paired counterpart still answering.
_CORE_FEEDS = {"league_table", "head_to_head"}


def build_degradation(*, failed_feeds: list[str], total_feeds: int) -> Degradation:
    level = 0
    warnings: list[str] = []
    for name in failed_feeds:
        warnings.append(f"feed_failed:{name}")
        level = max(level, 2 if name in _CORE_FEEDS else 1)
    if total_feeds > 0 and len(failed_feeds) >= total_feeds:
        level = 3
        warnings.append("all_feeds_failed")
    return Degradation(level=level, warnings=warnings)
