"""Per-invocation wiring of the stopover search components."""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx

from app.amadeus.auth import TokenManager
from app.amadeus.client import AmadeusClient
from app.config import Settings
from app.infrastructure.resilience import ResilientCaller
from app.stopover.assembler import BaselineAlignment, ResultAssembler
from app.stopover.orchestrator import HubFallbackOrchestrator


class StopoverService:
    def __init__(self, tokens: TokenManager, pricing: AmadeusClient,
                 orchestrator: HubFallbackOrchestrator, env: str):
        self.tokens = tokens
        self.pricing = pricing
        self.orchestrator = orchestrator
        self.env = env


@asynccontextmanager
async def open_stopover_service(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncIterator[StopoverService]:
    """Open a fresh HTTP client and token cache for one search invocation."""
    timeout = httpx.Timeout(settings.HTTP_TIMEOUT_MS / 1000.0, connect=3.0)
    async with httpx.AsyncClient(http2=transport is None, transport=transport, timeout=timeout) as http:
        caller = ResilientCaller(
            http,
            timeout_ms=settings.HTTP_TIMEOUT_MS,
            max_retries=settings.HTTP_MAX_RETRIES,
            sleep=sleep,
        )
        tokens = TokenManager(
            caller,
            host=settings.amadeus_host,
            client_id=settings.AMADEUS_CLIENT_ID,
            client_secret=settings.AMADEUS_CLIENT_SECRET,
            clock=clock,
            safety_margin_s=settings.TOKEN_SAFETY_MARGIN_SECONDS,
            default_ttl_s=settings.TOKEN_DEFAULT_TTL_SECONDS,
        )
        pricing = AmadeusClient(tokens, caller)
        assembler = ResultAssembler(pricing, BaselineAlignment(settings.BASELINE_ALIGNMENT))
        orchestrator = HubFallbackOrchestrator(
            pricing,
            assembler,
            fallback_hubs=settings.fallback_hub_list,
            max_hubs=settings.MAX_HUBS,
            max_depart_days=settings.MAX_DEPART_DAYS,
        )
        yield StopoverService(tokens, pricing, orchestrator, env=settings.AMADEUS_ENV)
