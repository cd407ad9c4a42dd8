"""
SurgeCast Service

Read, refresh, predict and ask operations over one composed set of components
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from surgecast.ai.agents import (
    AdvisoryAgent,
    AdvisoryResult,
    DiseaseMedicineAgent,
    OperationsAgent,
    OutbreakDetectorAgent,
    aqi_status,
)
from surgecast.core.cache import CacheService
from surgecast.core.config import AppSettings
from surgecast.core.database import Database
from surgecast.core.logging import get_logger
from surgecast.core.retry import RetryExecutor, RetryPolicy
from surgecast.data.freshness import FreshnessCache
from surgecast.data.locations import Location, resolve_location
from surgecast.data.providers import AirVisualProvider, OpenWeatherMapProvider
from surgecast.data.stores import OperationalStatsStore, OutbreakStore, PredictionStore, ReadingStore
from surgecast.domain import Prediction, Reading, SignalType, utcnow
from surgecast.jobs.scheduler import RefreshScheduler
from surgecast.pipeline.features import EventCalendar, FeatureBuilder
from surgecast.pipeline.outbreak import OutbreakReconciler
from surgecast.pipeline.prediction import PredictionAssembler

logger = get_logger(__name__)


@dataclass
class SurgeService:
    """
    Facade used by the CLI and any outer layer

    Every operation validates the location before touching the network.
    """

    settings: AppSettings
    database: Database
    readings: ReadingStore
    predictions: PredictionStore
    cache: FreshnessCache
    assembler: PredictionAssembler
    reconciler: OutbreakReconciler
    providers: dict
    operations: OperationsAgent
    medicine: DiseaseMedicineAgent
    response_cache: Optional[CacheService] = None
    clock: Callable[[], datetime] = utcnow

    def resolve(self, location: str) -> Location:
        return resolve_location(
            location,
            allowed=self.settings.locations.allowed,
            default_country=self.settings.locations.default_country,
        )

    async def refresh(self, location: str, signal_type: SignalType, force: bool = False) -> Reading:
        """Reading through the freshness cache; provider failures propagate"""
        return await self.cache.get_or_refresh(self.resolve(location), signal_type, force=force)

    async def latest(self, location: str, signal_type: SignalType) -> Optional[Reading]:
        return await self.readings.latest(self.resolve(location).name, signal_type)

    async def history(self, location: str, signal_type: SignalType, since_days: int = 7) -> List[Reading]:
        """Readings in the window, oldest first"""
        return await self.readings.history(self.resolve(location).name, signal_type, since_days)

    async def predict(
        self,
        location: str,
        target_date: Optional[date] = None,
        force: bool = True,
    ) -> Prediction:
        """Explicit prediction request; readings are force-refreshed by default"""
        return await self.assembler.predict(self.resolve(location), target_date, force=force)

    async def latest_prediction(self, location: str) -> Optional[Prediction]:
        return await self.predictions.latest(self.resolve(location).name)

    async def latest_or_generate(self, location: str) -> Prediction:
        """Latest prediction, regenerated when absent or older than the staleness window"""
        resolved = self.resolve(location)
        prediction = await self.predictions.latest(resolved.name)
        max_age = timedelta(hours=self.settings.prediction.stale_after_hours)

        if prediction is not None and self.clock() - prediction.generated_at < max_age:
            return prediction

        logger.info(f"Prediction for {resolved.name} is missing or stale, regenerating")
        return await self.assembler.predict(resolved, force=False)

    async def prediction_history(self, location: str, since_days: int = 30) -> List[Prediction]:
        """Predictions in the window, newest first"""
        return await self.predictions.history(self.resolve(location).name, since_days)

    async def operations_context(self, location: str) -> Dict[str, Any]:
        """Latest stored readings and prediction, without fetching anything"""
        resolved = self.resolve(location)
        air = await self.readings.latest(resolved.name, SignalType.AIR_QUALITY)
        weather = await self.readings.latest(resolved.name, SignalType.WEATHER)
        prediction = await self.predictions.latest(resolved.name)

        return {
            "location": resolved.name,
            "air_quality": {
                "aqi": air.aqi,
                "pm25": air.pm25,
                "pm10": air.pm10,
                "status": aqi_status(air.aqi),
                "source": air.source,
            } if air else None,
            "weather": {
                "temperature": weather.temperature,
                "humidity": weather.humidity,
                "wind_speed": weather.wind_speed,
                "precipitation": weather.precipitation,
            } if weather else None,
            "prediction": {
                "risk_score": prediction.risk_score,
                "target_date": prediction.target_date.isoformat(),
                "estimated_affected": prediction.estimated_affected,
                "suggested_medicines": prediction.suggested_medicines,
                "suggested_diseases": prediction.suggested_diseases,
                "staff_advice": prediction.staff_advice,
                "supply_advice": prediction.supply_advice,
            } if prediction else None,
            "timestamp": self.clock().isoformat(),
        }

    async def ask(self, location: str, message: str, context: Optional[Dict[str, Any]] = None) -> AdvisoryResult:
        """Operations copilot grounded in the location's latest data"""
        grounded = dict(context or {})
        grounded.update(await self.operations_context(location))
        return await self.operations.process(message=message, context=grounded)

    async def ask_medical(self, question: str, location: Optional[str] = None) -> str:
        """Disease and medicine Q&A, with current conditions when a location is given"""
        context = None
        if location is not None:
            full = await self.operations_context(location)
            context = {k: full[k] for k in ("location", "weather", "air_quality") if full[k] is not None}
        return await self.medicine.process(question=question, context=context)

    async def medicines_for_diseases(self, location: str, diseases: List[str]) -> List[str]:
        """Medicine names for the diseases, given the location's latest conditions"""
        context = await self.operations_context(location)
        return await self.medicine.medicines_for(diseases, context["weather"], context["air_quality"])

    def scheduler(self) -> RefreshScheduler:
        async def refresh(location: str, signal_type: SignalType) -> Reading:
            return await self.refresh(location, signal_type, force=True)

        return RefreshScheduler(refresh, self.settings.scheduler)

    async def close(self) -> None:
        """Release HTTP sessions, the response cache and the engine"""
        for provider in self.providers.values():
            provider.close()
        if self.response_cache is not None:
            await self.response_cache.disconnect()
        await self.database.dispose()


def build_service(
    settings: AppSettings,
    database: Optional[Database] = None,
    providers: Optional[dict] = None,
    ai_clients: Optional[dict] = None,
    executor: Optional[RetryExecutor] = None,
    clock: Callable[[], datetime] = utcnow,
) -> SurgeService:
    """
    Compose every component from one settings object

    The optional arguments replace the real collaborators (tests, tooling).
    """
    database = database or Database(settings.database)
    executor = executor or RetryExecutor(RetryPolicy.from_settings(settings.retry))

    response_cache = None
    if settings.ai.enable_cache:
        response_cache = CacheService(
            settings.redis, enabled=True, default_ttl=settings.ai.cache_ttl * 3600
        )

    if providers is None:
        providers = {
            SignalType.WEATHER: OpenWeatherMapProvider(settings.weather, executor),
            SignalType.AIR_QUALITY: AirVisualProvider(settings.air_quality, executor),
        }

    readings = ReadingStore(database, clock=clock)
    predictions = PredictionStore(database, clock=clock)
    cache = FreshnessCache(readings, providers, settings.freshness, clock=clock)

    features = FeatureBuilder(
        cache,
        OperationalStatsStore(database),
        EventCalendar(settings.calendar),
        settings.prediction,
        clock=clock,
    )
    advisory = AdvisoryAgent(settings.ai, executor, cache=response_cache, clients=ai_clients)
    detector = OutbreakDetectorAgent(
        settings.ai,
        executor,
        cache=response_cache,
        clients=ai_clients,
        limit=settings.outbreak.max_detections,
    )
    reconciler = OutbreakReconciler(OutbreakStore(database), detector, settings.outbreak, clock=clock)
    assembler = PredictionAssembler(features, advisory, reconciler, predictions, settings.prediction, clock=clock)
    operations = OperationsAgent(settings.ai, executor, cache=response_cache, clients=ai_clients)
    medicine = DiseaseMedicineAgent(settings.ai, executor, cache=response_cache, clients=ai_clients)

    return SurgeService(
        settings=settings,
        database=database,
        readings=readings,
        predictions=predictions,
        cache=cache,
        assembler=assembler,
        reconciler=reconciler,
        providers=providers,
        operations=operations,
        medicine=medicine,
        response_cache=response_cache,
        clock=clock,
    )
