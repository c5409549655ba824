from __future__ import annotations

from datetime import datetime, timezone

import pytest

from prediction_engine.cache.cache_keys import (
    CacheKey,
    accuracy_key,
    daily_index_key,
    infer_data_version,
    kickoff_date,
    legacy_key,
)


def test_key_shapes() -> None:
    key = CacheKey(fixture_id="1035", model_version="1.0.0", data_version="2024-03-10")
    assert key.strong() == "pred:1035:1.0.0:2024-03-10"
    assert key.legacy() == "prediction:1035"
    assert legacy_key("1035") == "prediction:1035"
    assert daily_index_key("2024-03-10") == "daily:2024-03-10"
    assert accuracy_key("pred_1035_1") == "accuracy:pred_1035_1"


def test_kickoff_date_is_utc() -> None:
    assert kickoff_date("2024-03-10T23:30:00-02:00") == "2024-03-11"
    assert kickoff_date("2024-03-10T15:00:00Z") == "2024-03-10"
    assert kickoff_date("2024-03-10") == "2024-03-10"
    with pytest.raises(ValueError):
        kickoff_date("next tuesday")


def test_infer_data_version() -> None:
    assert infer_data_version(1710082800) == "ts_1710082800"
    now = datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc)
    assert infer_data_version(None, now_utc=now) == "2024-03-10"
