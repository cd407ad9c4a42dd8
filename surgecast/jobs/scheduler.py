"""
SurgeCast Refresh Scheduler

Forced reading refreshes for every configured location at fixed clock boundaries
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from surgecast.core.config import SchedulerSettings
from surgecast.core.exceptions import SurgecastError
from surgecast.core.logging import get_logger
from surgecast.domain import SignalType

logger = get_logger(__name__)

RefreshCall = Callable[[str, SignalType], Awaitable[Any]]


def next_boundary(now: datetime, cadence_hours: int) -> datetime:
    """
    Next midnight-aligned boundary strictly after `now`

    With a 6 hour cadence the boundaries are 00:00, 06:00, 12:00 and 18:00.
    A cadence that does not divide the day is cut short at midnight.
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    cadence = timedelta(hours=cadence_hours)
    steps = (now - midnight) // cadence + 1
    return min(midnight + steps * cadence, midnight + timedelta(days=1))


@dataclass
class RefreshFailure:
    location: str
    signal_type: SignalType
    kind: str
    message: str


@dataclass
class RefreshSummary:
    """Outcome of one fan-out"""

    attempted: int = 0
    succeeded: int = 0
    failures: List[RefreshFailure] = field(default_factory=list)


class RefreshScheduler:
    """
    Periodic refresh task

    Nothing is refreshed at start-up; the first run happens at the next boundary.
    """

    def __init__(
        self,
        refresh: RefreshCall,
        settings: SchedulerSettings,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            refresh: forced refresh of one (location, signal) pair
            settings: cadence, locations and per-branch timeout
            clock: local wall clock
        """
        self.refresh = refresh
        self.settings = settings
        self._clock = clock

    def pairs(self, locations: Optional[Sequence[str]] = None) -> List[Tuple[str, SignalType]]:
        locations = self.settings.locations if locations is None else locations
        return [(location, signal) for location in locations for signal in SignalType]

    async def _branch(self, location: str, signal_type: SignalType) -> Any:
        return await asyncio.wait_for(
            self.refresh(location, signal_type),
            timeout=self.settings.branch_timeout,
        )

    async def run_once(self, locations: Optional[Sequence[str]] = None) -> RefreshSummary:
        """Refresh every pair concurrently; a failing branch never aborts the others"""
        pairs = self.pairs(locations)
        results = await asyncio.gather(
            *(self._branch(location, signal) for location, signal in pairs),
            return_exceptions=True,
        )

        summary = RefreshSummary(attempted=len(pairs))
        for (location, signal), result in zip(pairs, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                kind = result.kind if isinstance(result, SurgecastError) else type(result).__name__
                summary.failures.append(RefreshFailure(location, signal, kind, str(result)))
                logger.error(f"Refresh failed for {location}/{signal.value}: {kind}: {result}")
            else:
                summary.succeeded += 1

        logger.info(f"Scheduled refresh: {summary.succeeded}/{summary.attempted} succeeded")
        return summary

    async def run_forever(self, stop_event: asyncio.Event) -> int:
        """
        Refresh at every boundary until `stop_event` is set

        Returns:
            number of completed runs
        """
        runs = 0
        while not stop_event.is_set():
            now = self._clock()
            target = next_boundary(now, self.settings.cadence_hours)
            delay = max((target - now).total_seconds(), 0.0)
            logger.info(f"Next refresh at {target:%Y-%m-%d %H:%M} (in {delay:.0f}s)")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

            await self.run_once()
            runs += 1

        logger.info(f"Scheduler stopped after {runs} run(s)")
        return runs
