"""
Model-based request router that delegates to provider adapters.

'ChatDispatcher' is the single entry point for chat completions. It classifies
the request's model id with the 'ModelRegistry', picks the matching
'ProviderAdapter' and forwards the request. Unknown or empty model ids fall back
to the registry's default model. Whatever happens below, the caller receives a
normalized 'GenerationResult' (or a 'ChatStream'); exceptions never escape.
"""

from collections.abc import AsyncGenerator, AsyncIterator

from loguru import logger

from corprex_chat.llms.base import ErrorKind, GenerationRequest, GenerationResult, Provider, ProviderAdapter
from corprex_chat.llms.registry import ModelRegistry


class ChatStream:
    """
    A lazy, finite, single-use stream of text chunks.

    Iterating yields the content deltas of one generation. The concatenated
    text is available on 'content' at any point, so a caller that stops early
    still holds everything received so far. When the provider reports a
    failure the stream ends and 'error' holds the failure result; its message is
    not part of 'content'. 'aclose' aborts the underlying provider call.
    """

    def __init__(self, results: AsyncGenerator[GenerationResult, None], provider: Provider, model: str) -> None:
        self._results = results
        self._started = False
        self._finished = False
        self.provider = provider
        self.model = model
        self.content = ""
        self.chunk_count = 0
        self.error: GenerationResult | None = None
        self._iterator: AsyncGenerator[str, None] | None = None

    @property
    def finished(self) -> bool:
        return self._finished

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("ChatStream can only be iterated once")
        self._started = True
        self._iterator = self._iterate()
        return self._iterator

    async def _iterate(self) -> AsyncGenerator[str, None]:
        try:
            async for result in self._results:
                if not result.ok:
                    self.error = result
                    break
                self.content += result.content
                self.chunk_count += 1
                yield result.content
        except Exception as exc:
            logger.exception(f"Stream for model {self.model!r} failed")
            self.error = GenerationResult(
                content=f"Error: {exc}", error=ErrorKind.INTERNAL, provider=self.provider, model=self.model
            )
        finally:
            self._finished = True
            await self._results.aclose()

    async def collect(self) -> GenerationResult:
        """Drain the stream and return the assembled result."""
        async for _ in self:
            pass
        if self.error is None:
            return GenerationResult(content=self.content, provider=self.provider, model=self.model)
        if not self.content:
            return self.error
        return self.error.model_copy(update={"content": f"{self.content}\n\n{self.error.content}"})

    async def aclose(self) -> None:
        self._finished = True
        if self._iterator is not None:
            await self._iterator.aclose()
        await self._results.aclose()


class ChatDispatcher:
    """
    Routes requests to the adapter of the provider that serves the model.

    Adapters are injected (see 'build_adapters'), which keeps SDK clients out of
    module globals and lets tests substitute fakes.
    """

    def __init__(self, adapters: dict[Provider, ProviderAdapter], registry: ModelRegistry | None = None) -> None:
        self.adapters = adapters
        self.registry = registry or ModelRegistry()

    def _route(self, request: GenerationRequest) -> tuple[ProviderAdapter | None, GenerationRequest]:
        provider = self.registry.provider_for(request.model)
        if provider is Provider.UNKNOWN:
            fallback = self.registry.default
            logger.warning(f"Unknown model {request.model!r}, falling back to {fallback.id!r}")
            provider = fallback.provider
            model_id = fallback.id
        else:
            model_id = request.model
        routed = request.model_copy(update={"model": self.registry.api_model_for(model_id)})
        logger.info(f"Routing model {request.model!r} to {provider} as {routed.model!r}")
        return self.adapters.get(provider), routed

    async def dispatch(self, request: GenerationRequest) -> GenerationResult:
        """Return one complete result for 'request', whatever its 'stream' flag."""
        adapter, routed = self._route(request)
        if adapter is None:
            return self._missing_adapter(routed)
        if not adapter.available:
            logger.info(f"{adapter.label} is not configured, returning unavailable notice")
            return adapter.unavailable_result(routed.model)
        try:
            if routed.stream and adapter.supports_streaming:
                return await ChatStream(adapter.stream(routed), adapter.provider, routed.model).collect()
            return await adapter.complete(routed)
        except Exception as exc:
            logger.exception(f"Dispatch to {adapter.label} failed")
            return GenerationResult(
                content=f"Error: {exc}", error=ErrorKind.INTERNAL, provider=adapter.provider, model=routed.model
            )

    def dispatch_stream(self, request: GenerationRequest) -> ChatStream:
        """Return a 'ChatStream' over the provider's output.

        Unavailable providers produce a stream whose 'error' is the configuration
        notice and which yields no chunks.
        """
        adapter, routed = self._route(request)
        if adapter is None:
            return ChatStream(_single(self._missing_adapter(routed)), Provider.UNKNOWN, routed.model)
        return ChatStream(adapter.stream(routed), adapter.provider, routed.model)

    @staticmethod
    def _missing_adapter(request: GenerationRequest) -> GenerationResult:
        logger.error(f"No adapter registered for model {request.model!r}")
        return GenerationResult(
            content=f"Error: no provider is registered for model {request.model!r}",
            error=ErrorKind.INTERNAL,
            model=request.model,
        )


async def _single(result: GenerationResult) -> AsyncGenerator[GenerationResult, None]:
    yield result
