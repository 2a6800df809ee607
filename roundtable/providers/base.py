"""Abstract base for all model gateways, with the per-call deadline contract."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from roundtable.models import SamplingParams

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised when a gateway call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        self.message = message
        super().__init__(f"[{provider_name}] {message}")


class AgentTimeoutError(ProviderError):
    """The call did not finish before its deadline."""


class AgentProviderError(ProviderError):
    """The provider returned an error or an unusable payload."""


class ModelGateway(ABC):
    """Capability-bounded wrapper around one text-generation provider.

    Subclasses implement ``_complete`` and ``_stream``; the public methods
    enforce the deadline and map SDK failures onto ``ProviderError``. The
    gateway never retries. Each call owns its own request, so one instance
    can serve concurrent tasks.
    """

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'openai', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def _complete(self, prompt: str, params: SamplingParams, system: str | None) -> str:
        ...

    @abstractmethod
    def _stream(self, prompt: str, params: SamplingParams, system: str | None) -> AsyncIterator[str]:
        """Async generator of text deltas. Closing it must release the connection."""
        ...

    async def complete(
        self,
        prompt: str,
        params: SamplingParams,
        timeout_sec: float,
        system: str | None = None,
    ) -> str:
        """Return the full completion text.

        Raises:
            AgentTimeoutError: No response before ``timeout_sec``.
            AgentProviderError: API failure or empty response.
        """
        start = time.monotonic()
        try:
            text = await asyncio.wait_for(self._complete(prompt, params, system), timeout=timeout_sec)
        except TimeoutError as exc:
            raise AgentTimeoutError(self.name(), f"Request timed out after {timeout_sec:g}s") from exc
        except ProviderError:
            raise
        except Exception as exc:
            raise AgentProviderError(self.name(), f"API call failed: {exc}") from exc

        if not text:
            raise AgentProviderError(self.name(), "Empty response content")

        logger.info("%s complete: %.2fs, %d chars", self.name(), time.monotonic() - start, len(text))
        return text

    async def stream_complete(
        self,
        prompt: str,
        params: SamplingParams,
        timeout_sec: float,
        system: str | None = None,
    ) -> AsyncIterator[str]:
        """Yield text deltas until the provider finishes.

        The deadline covers the whole stream, not each delta. When it expires
        the underlying stream is closed before ``AgentTimeoutError`` is raised.
        """
        loop = asyncio.get_running_loop()
        start = time.monotonic()
        deadline = loop.time() + timeout_sec
        chunks = self._stream(prompt, params, system)
        received = 0
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise AgentTimeoutError(self.name(), f"Stream timed out after {timeout_sec:g}s")
                try:
                    delta = await asyncio.wait_for(anext(chunks), timeout=remaining)
                except StopAsyncIteration:
                    break
                except TimeoutError as exc:
                    raise AgentTimeoutError(self.name(), f"Stream timed out after {timeout_sec:g}s") from exc
                except ProviderError:
                    raise
                except Exception as exc:
                    raise AgentProviderError(self.name(), f"Stream failed: {exc}") from exc
                if delta:
                    received += len(delta)
                    yield delta
        finally:
            await chunks.aclose()

        if not received:
            raise AgentProviderError(self.name(), "Empty response content")

        logger.info("%s stream: %.2fs, %d chars", self.name(), time.monotonic() - start, received)
