from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from prediction_engine.records import AccuracyRecord


_MARKETS = {
    "outcome": "correctOutcomes",
    "scoreline": "correctScorelines",
    "btts": "correctBtts",
    "goalLine": "correctGoalLine",
    "cleanSheet": "correctCleanSheet",
}


def _pct(hits: int, n: int) -> float:
    if n <= 0:
        return 0.0
    return round(100.0 * float(hits) / float(n), 1)


def integrity_level(accuracy_pct: float) -> str:
    if accuracy_pct >= 80:
        return "HIGH"
    if accuracy_pct >= 65:
        return "MEDIUM"
    if accuracy_pct >= 50:
        return "LOW"
    return "POOR"


def compute_accuracy_stats(records: list[AccuracyRecord], *, total_predictions: int) -> dict[str, Any]:
    n = len(records)
    out: dict[str, Any] = {
        "totalPredictions": int(max(total_predictions, n)),
        "verifiedPredictions": int(n),
    }
    for market, field_name in _MARKETS.items():
        hits = sum(1 for r in records if bool(r.accuracy.get(market)))
        out[field_name] = int(hits)
        out[f"{market}Accuracy"] = _pct(hits, n)

    out["overallAccuracy"] = out["outcomeAccuracy"]

    newest_first = sorted(records, key=lambda r: r.verified_at, reverse=True)
    recent: dict[str, float] = {}
    for window in (10, 20, 50):
        chunk = newest_first[:window]
        recent[f"last{window}"] = _pct(sum(1 for r in chunk if r.accuracy.get("outcome")), len(chunk))
    out["recentAccuracy"] = recent
    out["integrityLevel"] = integrity_level(float(out["overallAccuracy"]))
    out["lastUpdated"] = datetime.now(timezone.utc).isoformat()
    return out
