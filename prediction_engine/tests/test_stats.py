from __future__ import annotations

from prediction_engine.records import AccuracyRecord
from prediction_engine.verification.stats import compute_accuracy_stats, integrity_level


def _acc(i: int, outcome: bool, *, scoreline: bool = False) -> AccuracyRecord:
    return AccuracyRecord(
        id=f"pred_{i}_1",
        fixture_id=str(i),
        home_team="A",
        away_team="B",
        league="L",
        prediction_date="2024-03-01T00:00:00+00:00",
        match_date="2024-03-02",
        accuracy={"outcome": outcome, "scoreline": scoreline, "btts": False, "goalLine": True, "cleanSheet": False},
        actual_result={"homeScore": 1, "awayScore": 0},
        verified_at=f"2024-03-{i + 1:02d}T00:00:00+00:00",
    )


def test_empty_projection() -> None:
    stats = compute_accuracy_stats([], total_predictions=4)
    assert stats["totalPredictions"] == 4
    assert stats["verifiedPredictions"] == 0
    assert stats["overallAccuracy"] == 0.0
    assert stats["integrityLevel"] == "POOR"
    assert stats["recentAccuracy"] == {"last10": 0.0, "last20": 0.0, "last50": 0.0}


def test_percentages_and_recent_windows() -> None:
    # oldest 12 wrong, newest 10 right
    records = [_acc(i, i >= 12, scoreline=i == 21) for i in range(22)]
    stats = compute_accuracy_stats(records, total_predictions=30)
    assert stats["verifiedPredictions"] == 22
    assert stats["correctOutcomes"] == 10
    assert stats["correctScorelines"] == 1
    assert stats["correctGoalLine"] == 22
    assert stats["outcomeAccuracy"] == 45.5
    assert stats["goalLineAccuracy"] == 100.0
    assert stats["recentAccuracy"]["last10"] == 100.0
    assert stats["recentAccuracy"]["last20"] == 50.0
    assert stats["recentAccuracy"]["last50"] == 45.5


def test_integrity_levels() -> None:
    assert integrity_level(80) == "HIGH"
    assert integrity_level(79.9) == "MEDIUM"
    assert integrity_level(65) == "MEDIUM"
    assert integrity_level(50) == "LOW"
    assert integrity_level(49.9) == "POOR"
