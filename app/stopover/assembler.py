"""
Rank priced tuples and compare each with a plain round-trip baseline.

The baseline query cannot match a four-leg itinerary exactly, so its dates
come from a named alignment policy and every baseline is marked approximate.
"""

from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from app.amadeus.client import AmadeusClient
from app.errors import ProviderError
from app.obs.logger import log_event
from app.types import BaselineFare, CandidateTuple, Leg, SearchRequest, SearchResult, TupleOutcome

GFLIGHTS_BASE = "https://www.google.com/flights?hl=en#flt="


class BaselineAlignment(str, Enum):
    # hub->destination date as depart, destination->hub date as return
    DESTINATION_LEGS = "destination_legs"
    # outbound (origin->hub) date as depart, inbound (hub->origin) date as return
    FULL_TRIP = "full_trip"


DEFAULT_BASELINE_ALIGNMENT = BaselineAlignment.DESTINATION_LEGS

BASELINE_HINTS = {
    BaselineAlignment.DESTINATION_LEGS: "Baseline computed per-tuple using DEST segment dates (approximate).",
    BaselineAlignment.FULL_TRIP: "Baseline computed per-tuple using outbound/inbound dates (approximate).",
}


def baseline_dates(candidate: CandidateTuple, alignment: BaselineAlignment) -> Tuple[date, date]:
    if alignment == BaselineAlignment.FULL_TRIP:
        return candidate.outbound_date, candidate.inbound_date
    return candidate.hub_depart_date, candidate.hub_return_date


def build_deeplink(legs: List[Leg]) -> str:
    """Google Flights multi-city link, e.g. #flt=YUL.CDG.20251120/CDG.ATH.20251122/..."""
    parts = "/".join(
        f"{leg.origin}.{leg.destination}.{leg.departure_date.strftime('%Y%m%d')}" for leg in legs
    )
    return f"{GFLIGHTS_BASE}{parts}"


def compute_delta(price: Optional[float], baseline: Optional[BaselineFare]) -> Optional[float]:
    if price is None or baseline is None or baseline.total is None:
        return None
    return price - baseline.total


class ResultAssembler:
    def __init__(self, pricing: AmadeusClient,
                 alignment: BaselineAlignment = DEFAULT_BASELINE_ALIGNMENT):
        self.pricing = pricing
        self.alignment = BaselineAlignment(alignment)

    @property
    def hint(self) -> str:
        return BASELINE_HINTS[self.alignment]

    async def _baseline(self, request: SearchRequest, depart: date, ret: date) -> Optional[BaselineFare]:
        try:
            offer = await self.pricing.price_round_trip(
                request.origin, request.destination, depart, ret,
                traveler_count=request.traveler_count,
                currency=request.currency,
                cabin=request.cabin,
            )
        except ProviderError as e:
            log_event("baseline_skipped", level="WARNING", depart=depart, ret=ret, error=str(e))
            return None
        if offer is None:
            return None
        return BaselineFare(total=offer.total, currency=offer.currency)

    async def assemble(self, priced: List[TupleOutcome], request: SearchRequest) -> List[SearchResult]:
        """Attach baselines, deltas and deeplinks, then stable-sort by price."""
        # Tuples sharing the same baseline dates reuse one provider call
        baselines: Dict[Tuple[date, date], Optional[BaselineFare]] = {}
        results: List[SearchResult] = []

        for outcome in priced:
            if outcome.offer is None:
                continue
            key = baseline_dates(outcome.tuple, self.alignment)
            if key not in baselines:
                baselines[key] = await self._baseline(request, *key)
            baseline = baselines[key]

            offer = outcome.offer
            legs = outcome.tuple.legs(request.origin, outcome.hub, request.destination)
            results.append(SearchResult(
                tuple=outcome.tuple,
                hub=outcome.hub,
                price=offer.total,
                currency=offer.currency or request.currency,
                deeplink=build_deeplink(legs),
                baseline=baseline,
                delta_vs_baseline=compute_delta(offer.total, baseline),
                carrier_codes=offer.carrier_codes,
                leg_durations=offer.leg_durations,
            ))

        return sorted(results, key=lambda r: float("inf") if r.price is None else r.price)
