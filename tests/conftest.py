"""
Shared fixtures

In-memory database, fake providers, a fake reasoning client and a
controllable clock. No test touches the network.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from surgecast.core.config import (
    AISettings,
    AppSettings,
    DatabaseSettings,
    ProviderSettings,
    RetrySettings,
)
from surgecast.core.database import Database
from surgecast.core.retry import RetryExecutor, RetryPolicy
from surgecast.domain import SignalType
from surgecast.service import build_service

from .fakes import FakeClock, FakeProvider, FakeReasoning


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        log_to_file=False,
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        weather=ProviderSettings(api_key="weather-key", base_url="https://weather.test"),
        air_quality=ProviderSettings(api_key="aq-key", base_url="https://aq.test"),
        ai=AISettings(openai_api_key="ai-key", enable_rate_limiting=False),
        retry=RetrySettings(max_retries=2, initial_delay=0, max_delay=1, max_jitter=0),
    )


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def executor(sleep) -> RetryExecutor:
    policy = RetryPolicy(max_retries=2, initial_delay=0.0, max_delay=1.0, max_jitter=0.0)
    return RetryExecutor(policy, sleep=sleep, jitter=lambda low, high: 0.0)


@pytest.fixture
async def database(settings):
    db = Database(settings.database)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def weather_provider() -> FakeProvider:
    return FakeProvider(
        SignalType.WEATHER,
        {"temperature": 22.0, "humidity": 40.0, "wind_speed": 10.0, "precipitation": 0.0},
        name="openweathermap",
    )


@pytest.fixture
def air_provider() -> FakeProvider:
    return FakeProvider(SignalType.AIR_QUALITY, {"aqi": 180.0, "pm25": 90.0, "pm10": 140.0}, name="airvisual")


@pytest.fixture
def reasoning() -> FakeReasoning:
    return FakeReasoning()


@pytest.fixture
def service(settings, database, weather_provider, air_provider, reasoning, executor, clock):
    return build_service(
        settings,
        database=database,
        providers={SignalType.WEATHER: weather_provider, SignalType.AIR_QUALITY: air_provider},
        ai_clients={"openai": reasoning},
        executor=executor,
        clock=clock,
    )


@pytest.fixture
def http_session() -> MagicMock:
    session = MagicMock()
    session.headers = {}
    return session
