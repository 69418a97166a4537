"""
Hub fallback search.

Hubs are tried in order; each hub moves PENDING -> SEARCHING and ends either
PRODUCTIVE (at least one priced tuple) or EXHAUSTED. The search stops at the
first PRODUCTIVE hub. Tuple failures become skipped TupleOutcomes; only an
AuthError escapes.
"""

from enum import Enum
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from app.amadeus.client import AmadeusClient
from app.errors import ProviderError, TransientProviderError
from app.obs.context import hub_var
from app.obs.logger import log_event
from app.obs.metrics import inc_counter
from app.stopover.assembler import ResultAssembler
from app.stopover.hubs import MAX_HUBS, build_hub_list
from app.stopover.tuples import MAX_DEPART_DAYS, generate_tuples
from app.types import CandidateTuple, SearchRequest, SearchResult, TupleOutcome


class HubState(str, Enum):
    PENDING = "pending"
    SEARCHING = "searching"
    PRODUCTIVE = "productive"
    EXHAUSTED = "exhausted"


class SkipReason(str, Enum):
    NO_OFFERS = "no_offers"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"


class HubAttempt(BaseModel):
    hub: str
    state: HubState = HubState.PENDING
    priced: int = 0
    skipped: int = 0


class HubSearchOutcome(BaseModel):
    tried_hubs: List[str] = Field(default_factory=list)
    hub: Optional[str] = None
    attempts: List[HubAttempt] = Field(default_factory=list)
    results: List[SearchResult] = Field(default_factory=list)
    baseline_hint: str = ""


def stop_at_first_productive_hub(attempt: HubAttempt) -> bool:
    return attempt.state == HubState.PRODUCTIVE


class HubFallbackOrchestrator:
    def __init__(self, pricing: AmadeusClient, assembler: ResultAssembler,
                 fallback_hubs: Iterable[str] = (), max_hubs: int = MAX_HUBS,
                 max_depart_days: int = MAX_DEPART_DAYS):
        self.pricing = pricing
        self.assembler = assembler
        self.fallback_hubs = list(fallback_hubs)
        self.max_hubs = max_hubs
        self.max_depart_days = max_depart_days

    def hub_list(self, request: SearchRequest) -> List[str]:
        return build_hub_list(
            request.hub,
            self.fallback_hubs,
            request.allow_fallback_hubs,
            exclude=(request.origin, request.destination),
            max_hubs=self.max_hubs,
        )

    async def price_tuple(self, request: SearchRequest, hub: str,
                          candidate: CandidateTuple) -> TupleOutcome:
        """Price one tuple. ProviderError becomes a skip; AuthError propagates."""
        try:
            offer = await self.pricing.price_multi_leg(
                request.origin, hub, request.destination, candidate,
                traveler_count=request.traveler_count,
                currency=request.currency,
                cabin=request.cabin,
            )
        except TransientProviderError as e:
            return TupleOutcome(tuple=candidate, hub=hub, skip_reason=SkipReason.TIMEOUT.value, detail=str(e))
        except ProviderError as e:
            return TupleOutcome(tuple=candidate, hub=hub, skip_reason=SkipReason.PROVIDER_ERROR.value, detail=str(e))

        if offer is None:
            return TupleOutcome(tuple=candidate, hub=hub, skip_reason=SkipReason.NO_OFFERS.value)
        return TupleOutcome(tuple=candidate, hub=hub, offer=offer)

    async def search_hub(self, request: SearchRequest, hub: str) -> Tuple[HubAttempt, List[TupleOutcome]]:
        attempt = HubAttempt(hub=hub, state=HubState.SEARCHING)
        priced: List[TupleOutcome] = []
        token = hub_var.set(hub)
        try:
            for candidate in generate_tuples(request.constraints(), max_depart_days=self.max_depart_days):
                outcome = await self.price_tuple(request, hub, candidate)
                if outcome.priced:
                    attempt.priced += 1
                    priced.append(outcome)
                    inc_counter("tuples_priced_total", {"hub": hub})
                else:
                    attempt.skipped += 1
                    inc_counter("tuples_skipped_total", {"hub": hub, "reason": outcome.skip_reason})
                    log_event("tuple_skipped", reason=outcome.skip_reason, detail=outcome.detail,
                              outbound=candidate.outbound_date, inbound=candidate.inbound_date)
                if attempt.priced >= request.max_results:
                    break
        finally:
            hub_var.reset(token)

        attempt.state = HubState.PRODUCTIVE if attempt.priced else HubState.EXHAUSTED
        log_event("hub_finished", hub=hub, state=attempt.state.value,
                  priced=attempt.priced, skipped=attempt.skipped)
        return attempt, priced

    async def search(self, request: SearchRequest) -> HubSearchOutcome:
        # Fail before any provider traffic when credentials are absent
        self.pricing.tokens.require_credentials()

        outcome = HubSearchOutcome(baseline_hint=self.assembler.hint)
        winner: Optional[HubAttempt] = None
        priced: List[TupleOutcome] = []

        for hub in self.hub_list(request):
            outcome.tried_hubs.append(hub)
            attempt, priced = await self.search_hub(request, hub)
            outcome.attempts.append(attempt)
            if stop_at_first_productive_hub(attempt):
                winner = attempt
                break

        if winner is None:
            log_event("search_exhausted", tried_hubs=outcome.tried_hubs)
            return outcome

        outcome.hub = winner.hub
        outcome.results = await self.assembler.assemble(priced, request)
        return outcome
