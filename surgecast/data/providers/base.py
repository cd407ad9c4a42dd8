"""
SurgeCast Base Provider

Shared HTTP plumbing for external signal providers
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from surgecast.core.config import ProviderSettings
from surgecast.core.exceptions import MissingCredentialsError, ProviderError
from surgecast.core.logging import get_logger
from surgecast.core.rate_limiter import RateLimiter
from surgecast.core.retry import RetryExecutor
from surgecast.data.locations import Location
from surgecast.domain import SignalType

logger = get_logger(__name__)


@dataclass
class ProviderReading:
    """Normalised provider output"""

    signal_type: SignalType
    values: Dict[str, float]
    source: str
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signal_type": self.signal_type.value,
            "values": self.values,
            "source": self.source,
            "raw": self.raw,
        }


def _retry_after(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class BaseProvider(ABC):
    """
    Base provider

    Blocking `requests` calls run in a worker thread inside the retry
    executor; transport errors become builtins and HTTP errors become
    ProviderError so the executor can classify them.
    """

    name = "provider"
    signal_type: SignalType

    def __init__(
        self,
        settings: ProviderSettings,
        executor: RetryExecutor,
        session: Optional[requests.Session] = None,
        user_agent: Optional[str] = None,
    ):
        """
        Args:
            settings: key, base URL, timeout and rate limit
            executor: retry executor shared with other components
            session: HTTP session, created when omitted
            user_agent: User-Agent header
        """
        self.settings = settings
        self.executor = executor
        self.timeout = settings.timeout
        self.rate_limiter = RateLimiter(
            max_requests=settings.rate_limit,
            window_seconds=60,
            name=self.name,
        )

        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent or "Mozilla/5.0 (compatible; SurgeCast/1.0)",
        })

        logger.info(f"{self.__class__.__name__} initialized")

    @property
    def has_credentials(self) -> bool:
        return bool(self.settings.api_key)

    def require_credentials(self) -> str:
        """API key, or MissingCredentialsError before any network call"""
        if not self.settings.api_key:
            raise MissingCredentialsError(self.name)
        return self.settings.api_key

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Blocking GET returning decoded JSON"""
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise TimeoutError(f"{self.name}: request timed out: {e}") from e
        except requests.ConnectionError as e:
            raise ConnectionError(f"{self.name}: connection failed: {e}") from e

        if response.status_code >= 400:
            try:
                details = response.json()
            except ValueError:
                details = response.text
            raise ProviderError(
                f"{self.name}: HTTP {response.status_code}",
                status_code=response.status_code,
                retry_after=_retry_after(response),
                details=details,
            )

        logger.debug(f"GET {url} - Status: {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"{self.name}: response is not JSON") from e

    async def get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Rate-limited GET with retries"""

        async def call() -> Dict[str, Any]:
            await self.rate_limiter.acquire()
            return await asyncio.to_thread(self._get, url, params)

        return await self.executor.execute(call, label=f"{self.name} GET")

    @abstractmethod
    async def fetch(self, location: Location) -> ProviderReading:
        """Fetch the current reading for a location"""

    @abstractmethod
    def parse(self, payload: Dict[str, Any]) -> ProviderReading:
        """Normalise a provider payload"""

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
