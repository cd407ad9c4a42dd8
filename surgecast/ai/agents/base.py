"""
SurgeCast AI Base Agent

Unified LLM access for OpenAI-compatible and Anthropic providers
"""
import hashlib
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from surgecast.core.cache import CacheService
from surgecast.core.config import AISettings
from surgecast.core.exceptions import MissingCredentialsError, ProviderError
from surgecast.core.logging import get_logger
from surgecast.core.rate_limiter import RateLimiter
from surgecast.core.retry import RetryExecutor

logger = get_logger(__name__)

OPENAI_COMPATIBLE = ("openai", "custom")

_FENCE = re.compile(r"```(?:json)?\s*\n?|```")


def strip_fences(text: str) -> str:
    """Remove Markdown code fences around a model response"""
    return _FENCE.sub("", text or "").strip()


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Decode a fenced or bare JSON object; None when it is not one"""
    try:
        value = json.loads(strip_fences(text))
    except (json.JSONDecodeError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def _retry_after_header(response: Any) -> Optional[float]:
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class BaseAgent(ABC):
    """
    AI agent base class

    Provides completion, response caching, rate limiting and retries
    through the shared executor. SDK errors are translated into
    ProviderError / TimeoutError / ConnectionError at this seam.
    """

    def __init__(
        self,
        name: str,
        settings: AISettings,
        executor: RetryExecutor,
        cache: Optional[CacheService] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        clients: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            name: agent name, part of the cache key
            settings: reasoning-service configuration
            executor: retry executor
            cache: optional response cache
            temperature: overrides the configured temperature
            max_tokens: overrides the configured token limit
            clients: pre-built SDK clients keyed by provider
        """
        self.name = name
        self.settings = settings
        self.executor = executor
        self.cache = cache
        self.provider = settings.provider.lower()
        self.model = settings.model
        self.temperature = settings.temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.max_tokens
        self.rate_limiter = RateLimiter(
            max_requests=settings.rate_limit,
            window_seconds=60,
            enabled=settings.enable_rate_limiting,
            name=f"agent:{name}",
        )

        self.clients: Dict[str, Any] = dict(clients or {})
        if not self.clients:
            self._init_clients()

        logger.info(f"Agent '{name}' initialized with provider '{self.provider}' and model '{self.model}'")

    def _init_clients(self) -> None:
        """Create SDK clients for every configured key"""
        s = self.settings
        if s.openai_api_key:
            self.clients["openai"] = AsyncOpenAI(
                api_key=s.openai_api_key,
                base_url=s.openai_base_url,
                timeout=s.timeout,
                max_retries=0,
            )
        if s.anthropic_api_key:
            self.clients["anthropic"] = AsyncAnthropic(
                api_key=s.anthropic_api_key,
                timeout=s.timeout,
                max_retries=0,
            )
        if s.custom_api_key and s.custom_base_url:
            self.clients["custom"] = AsyncOpenAI(
                api_key=s.custom_api_key,
                base_url=s.custom_base_url,
                timeout=s.timeout,
                max_retries=0,
            )

    @property
    def has_credentials(self) -> bool:
        return self.provider in self.clients

    def _client(self) -> Any:
        client = self.clients.get(self.provider)
        if client is None:
            raise MissingCredentialsError(f"reasoning service ({self.provider})")
        return client

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        use_cache: bool = True,
    ) -> str:
        """
        Generate a completion

        Args:
            prompt: user prompt
            system: system prompt
            use_cache: consult the response cache

        Returns:
            generated text

        Raises:
            MissingCredentialsError: no key for the configured provider
            the executor's last failure once retries are exhausted
        """
        client = self._client()

        use_cache = use_cache and self.cache is not None and self.settings.enable_cache
        cache_key = self._make_cache_key(prompt, system)
        if use_cache:
            cached = await self.cache.get(cache_key)
            if cached:
                logger.debug(f"Cache hit for agent '{self.name}'")
                return cached

        async def call() -> str:
            await self.rate_limiter.acquire()
            return await self._complete_translated(client, prompt, system)

        text = await self.executor.execute(call, label=f"agent '{self.name}'")

        if use_cache:
            await self.cache.set(cache_key, text, ttl=self.settings.cache_ttl * 3600)

        return text

    async def _complete_translated(self, client: Any, prompt: str, system: Optional[str]) -> str:
        try:
            if self.provider == "anthropic":
                return await self._complete_anthropic(client, prompt, system)
            if self.provider in OPENAI_COMPATIBLE:
                return await self._complete_openai_compatible(client, prompt, system)
        except (openai.APITimeoutError, anthropic.APITimeoutError) as e:
            raise TimeoutError(f"{self.provider} request timed out: {e}") from e
        except (openai.APIConnectionError, anthropic.APIConnectionError) as e:
            raise ConnectionError(f"{self.provider} connection failed: {e}") from e
        except (openai.APIStatusError, anthropic.APIStatusError) as e:
            raise ProviderError(
                f"{self.provider}: {e.message}",
                status_code=e.status_code,
                retry_after=_retry_after_header(e.response),
                details=e.body,
            ) from e
        except (openai.APIError, anthropic.APIError) as e:
            raise ProviderError(f"{self.provider}: {e.message}", details=e.body) from e

        raise ProviderError(f"Unsupported reasoning provider: {self.provider}")

    async def _complete_openai_compatible(self, client: Any, prompt: str, system: Optional[str]) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        choices = getattr(response, "choices", None)
        if not choices or choices[0].message is None:
            raise ProviderError(f"{self.provider}: empty completion")
        return choices[0].message.content or ""

    async def _complete_anthropic(self, client: Any, prompt: str, system: Optional[str]) -> str:
        response = await client.messages.create(
            model=self.model,
            system=system or "",
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        blocks = [b.text for b in (getattr(response, "content", None) or []) if getattr(b, "text", None)]
        if not blocks:
            raise ProviderError(f"{self.provider}: empty completion")
        return "".join(blocks)

    def _make_cache_key(self, prompt: str, system: Optional[str] = None) -> str:
        content = f"{self.name}:{self.model}:{system or ''}:{prompt}"
        return f"agent:{hashlib.md5(content.encode()).hexdigest()}"

    @abstractmethod
    async def process(self, **kwargs) -> Any:
        """Run the agent's task"""
