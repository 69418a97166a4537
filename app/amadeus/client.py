from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from app.amadeus.auth import TokenManager
from app.amadeus.transform import pick_cheapest
from app.errors import ProviderError
from app.infrastructure.resilience import ResilientCaller
from app.obs.logger import log_event
from app.types import CandidateTuple, Leg, Offer

OFFERS_PATH = "/v2/shopping/flight-offers"
ROUND_TRIP_MAX_OFFERS = 50


class AmadeusClient:
    """Pricing adapter over Amadeus Flight Offers Search."""

    def __init__(self, tokens: TokenManager, caller: ResilientCaller):
        self.tokens = tokens
        self.caller = caller

    def _build_travelers(self, adults: int) -> List[Dict[str, Any]]:
        """
        Build travelers array of ADULTs with sequential string ids starting at '1'.
        """
        count = max(1, int(adults) if adults is not None else 1)
        return [{"id": str(i + 1), "travelerType": "ADULT"} for i in range(count)]

    def _build_origin_destinations(self, legs: List[Leg]) -> List[Dict[str, Any]]:
        """
        Build originDestinations with stable ids "1".."n" in leg order; the
        cabin restriction below refers to legs by these ids.
        """
        return [
            {
                "id": str(i + 1),
                "originLocationCode": leg.origin,
                "destinationLocationCode": leg.destination,
                "departureDateTimeRange": {"date": leg.departure_date.isoformat()},
            }
            for i, leg in enumerate(legs)
        ]

    def build_multi_leg_body(self, legs: List[Leg], traveler_count: int,
                             currency: str, cabin: str) -> Dict[str, Any]:
        origin_destinations = self._build_origin_destinations(legs)
        return {
            "currencyCode": currency,
            "travelers": self._build_travelers(traveler_count),
            "sources": ["GDS"],
            "originDestinations": origin_destinations,
            "searchCriteria": {
                "flightFilters": {
                    "cabinRestrictions": [
                        {
                            "cabin": cabin,
                            "coverage": "MOST_SEGMENTS",
                            "originDestinationIds": [od["id"] for od in origin_destinations],
                        }
                    ]
                }
            },
        }

    async def _send(self, request: httpx.Request, label: str) -> Dict[str, Any]:
        r = await self.caller.execute(request)
        if r.status_code == 401:
            # Token was revoked early; next tuple refreshes it
            self.tokens.invalidate()
        if not r.is_success:
            log_event("provider_error", level="WARNING", query=label,
                      status=r.status_code, body=r.text[:300])
            raise ProviderError(f"Amadeus {label} error: {r.status_code}",
                                status=r.status_code, body=r.text)
        try:
            return r.json()
        except ValueError as e:
            raise ProviderError(f"Amadeus {label} returned invalid JSON",
                                status=r.status_code) from e

    async def price_multi_leg(self, origin: str, hub: str, destination: str,
                              candidate: CandidateTuple, traveler_count: int = 1,
                              currency: str = "CAD", cabin: str = "ECONOMY") -> Optional[Offer]:
        cred = await self.tokens.acquire()
        body = self.build_multi_leg_body(candidate.legs(origin, hub, destination),
                                         traveler_count, currency, cabin)
        request = httpx.Request(
            "POST",
            f"{cred.host}{OFFERS_PATH}",
            json=body,
            headers={
                "Authorization": f"Bearer {cred.value}",
                "Content-Type": "application/json",
            },
        )
        payload = await self._send(request, "multi-city")
        return pick_cheapest(payload)

    async def price_round_trip(self, origin: str, destination: str,
                               depart_date: date, return_date: date,
                               traveler_count: int = 1, currency: str = "CAD",
                               cabin: str = "ECONOMY") -> Optional[Offer]:
        cred = await self.tokens.acquire()
        params = {
            "originLocationCode": origin,
            "destinationLocationCode": destination,
            "departureDate": depart_date.isoformat(),
            "returnDate": return_date.isoformat(),
            "adults": str(traveler_count),
            "travelClass": cabin,
            "currencyCode": currency,
            "max": str(ROUND_TRIP_MAX_OFFERS),
        }
        request = httpx.Request(
            "GET",
            f"{cred.host}{OFFERS_PATH}",
            params=params,
            headers={"Authorization": f"Bearer {cred.value}"},
        )
        payload = await self._send(request, "round-trip")
        return pick_cheapest(payload)
