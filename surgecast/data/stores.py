"""
SurgeCast Stores

Async persistence for readings, operational statistics, outbreaks and predictions
"""
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select

from surgecast.core.database import Database
from surgecast.core.logging import get_logger
from surgecast.domain import (
    READING_MODELS,
    OperationalStat,
    OutbreakRecord,
    OutbreakSource,
    Prediction,
    Reading,
    SignalType,
    utcnow,
)

logger = get_logger(__name__)


class ReadingStore:
    """
    Append-only reading storage

    "Latest" is the greatest captured_at; concurrent writers never conflict.
    """

    def __init__(self, database: Database, clock: Callable[[], datetime] = utcnow):
        self.database = database
        self._clock = clock

    async def append(self, reading: Reading) -> Reading:
        """Insert a new reading"""
        async with self.database.session() as session:
            session.add(reading)
            await session.flush()
        logger.debug(f"Stored {reading!r}")
        return reading

    async def latest(self, location: str, signal_type: SignalType) -> Optional[Reading]:
        """Most recent reading, or None"""
        model = READING_MODELS[signal_type]
        async with self.database.session() as session:
            query = (
                select(model)
                .where(model.location == location)
                .order_by(model.captured_at.desc(), model.id.desc())
                .limit(1)
            )
            result = await session.execute(query)
            return result.scalars().first()

    async def history(
        self,
        location: str,
        signal_type: SignalType,
        since_days: int = 7,
    ) -> List[Reading]:
        """Readings from the last `since_days` days, oldest first"""
        model = READING_MODELS[signal_type]
        since = self._clock() - timedelta(days=since_days)
        async with self.database.session() as session:
            query = (
                select(model)
                .where(model.location == location, model.captured_at >= since)
                .order_by(model.captured_at.asc(), model.id.asc())
            )
            result = await session.execute(query)
            return list(result.scalars().all())


class OperationalStatsStore:
    """Read-only access to daily admissions"""

    def __init__(self, database: Database):
        self.database = database

    async def recent_admissions(
        self,
        location: str,
        days: int,
        today: date,
    ) -> List[Tuple[date, int]]:
        """(day, admissions) rows within the last `days` days up to `today`"""
        since = today - timedelta(days=days - 1)
        async with self.database.session() as session:
            query = (
                select(OperationalStat.day, OperationalStat.admissions)
                .where(
                    OperationalStat.location == location,
                    OperationalStat.day >= since,
                    OperationalStat.day <= today,
                )
                .order_by(OperationalStat.day.asc())
            )
            result = await session.execute(query)
            return [(row.day, row.admissions) for row in result]


class OutbreakStore:
    """Outbreak records: inserts plus keyed merges"""

    def __init__(self, database: Database):
        self.database = database

    async def add(self, record: OutbreakRecord) -> OutbreakRecord:
        async with self.database.session() as session:
            session.add(record)
            await session.flush()
        return record

    async def current(
        self,
        location: str,
        disease_name: str,
        since: datetime,
    ) -> Optional[OutbreakRecord]:
        """Newest record for (location, disease) observed at or after `since`"""
        async with self.database.session() as session:
            query = (
                select(OutbreakRecord)
                .where(
                    OutbreakRecord.location == location,
                    func.lower(OutbreakRecord.disease_name) == disease_name.strip().lower(),
                    OutbreakRecord.observed_at >= since,
                )
                .order_by(OutbreakRecord.observed_at.desc(), OutbreakRecord.id.desc())
                .limit(1)
            )
            result = await session.execute(query)
            return result.scalars().first()

    async def update(
        self,
        record_id: int,
        apply: Callable[[OutbreakRecord], None],
    ) -> OutbreakRecord:
        """Load a record, apply `apply` to it and commit"""
        async with self.database.session() as session:
            record = await session.get(OutbreakRecord, record_id)
            if record is None:
                raise LookupError(f"Outbreak record {record_id} not found")
            apply(record)
            await session.flush()
            return record

    async def recent(self, location: str, since: datetime) -> List[OutbreakRecord]:
        """Records observed since `since`, newest first"""
        async with self.database.session() as session:
            query = (
                select(OutbreakRecord)
                .where(OutbreakRecord.location == location, OutbreakRecord.observed_at >= since)
                .order_by(OutbreakRecord.observed_at.desc(), OutbreakRecord.active_cases.desc())
            )
            result = await session.execute(query)
            return list(result.scalars().all())

    async def purge(
        self,
        location: str,
        before: datetime,
        sources: Sequence[OutbreakSource],
    ) -> int:
        """Delete records older than `before` with one of `sources`"""
        async with self.database.session() as session:
            result = await session.execute(
                delete(OutbreakRecord).where(
                    OutbreakRecord.location == location,
                    OutbreakRecord.observed_at < before,
                    OutbreakRecord.source.in_(list(sources)),
                )
            )
            return result.rowcount or 0


class PredictionStore:
    """Append-only prediction storage"""

    def __init__(self, database: Database, clock: Callable[[], datetime] = utcnow):
        self.database = database
        self._clock = clock

    async def add(self, prediction: Prediction) -> Prediction:
        async with self.database.session() as session:
            session.add(prediction)
            await session.flush()
        return prediction

    async def latest(self, location: str) -> Optional[Prediction]:
        """Prediction with the greatest generated_at"""
        async with self.database.session() as session:
            query = (
                select(Prediction)
                .where(Prediction.location == location)
                .order_by(Prediction.generated_at.desc(), Prediction.id.desc())
                .limit(1)
            )
            result = await session.execute(query)
            return result.scalars().first()

    async def history(self, location: str, since_days: int = 30) -> List[Prediction]:
        """Predictions generated in the last `since_days` days, newest first"""
        since = self._clock() - timedelta(days=since_days)
        async with self.database.session() as session:
            query = (
                select(Prediction)
                .where(Prediction.location == location, Prediction.generated_at >= since)
                .order_by(Prediction.generated_at.desc(), Prediction.id.desc())
            )
            result = await session.execute(query)
            return list(result.scalars().all())
