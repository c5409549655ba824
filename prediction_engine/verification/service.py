from __future__ import annotations

import asyncio
import logging
import weakref

from prediction_engine.cache.prediction_store import PredictionStore
from prediction_engine.errors import ConflictError, NotFoundError
from prediction_engine.records import AccuracyRecord, ActualResult, PredictionRecord, utc_now_iso
from prediction_engine.verification.accuracy import AccuracyBreakdown, score_prediction


logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "api-sports"


class VerificationService:
    def __init__(self, store: PredictionStore) -> None:
        self._store = store
        # entries vanish once no verification holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, fixture_id: str) -> asyncio.Lock:
        lock = self._locks.get(fixture_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[fixture_id] = lock
        return lock

    async def verify_record(
        self,
        fixture_id: str,
        actual_result: ActualResult,
        *,
        source: str | None = None,
    ) -> tuple[PredictionRecord, AccuracyBreakdown]:
        fid = str(fixture_id)
        async with self._lock_for(fid):
            record = await self._store.get_latest(fid)
            if record is None:
                raise NotFoundError("Prediction not found", matchId=fid)
            if record.verified:
                raise ConflictError("Prediction already verified", verifiedAt=record.verified_at)

            breakdown = score_prediction(record.prediction, actual_result)
            record.verified = True
            record.verified_at = utc_now_iso()
            record.actual_result = actual_result.to_dict()
            record.accuracy = breakdown.to_dict()
            record.verification_source = source or DEFAULT_SOURCE

            await self._store.save_latest(record)
            await self._store.put_accuracy(AccuracyRecord.from_prediction(record))

        logger.info(
            "verified prediction %s: outcome %s",
            record.id,
            "correct" if breakdown.outcome else "incorrect",
        )
        return record, breakdown

    async def verify(self, fixture_id: str, actual_result: ActualResult, *, source: str | None = None) -> AccuracyBreakdown:
        _, breakdown = await self.verify_record(fixture_id, actual_result, source=source)
        return breakdown
