"""Fakes shared by the test modules."""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx


def offers_payload(*totals: Optional[float], currency: str = "CAD", carrier: str = "AF") -> Dict[str, Any]:
    """Amadeus-shaped flight-offers body; None yields an offer without a price."""
    data = []
    for i, total in enumerate(totals):
        price: Dict[str, Any] = {"currency": currency}
        if total is not None:
            price["total"] = f"{total:.2f}"
        data.append({
            "id": str(i + 1),
            "price": price,
            "validatingAirlineCodes": [carrier],
            "itineraries": [{"duration": "PT7H30M", "segments": [{"carrierCode": carrier}]}],
        })
    return {"data": data}


class FakeAmadeus:
    """Scripted stand-in for the Amadeus endpoints behind httpx.MockTransport."""

    def __init__(self):
        self.token_calls = 0
        self.token_status = 200
        self.expires_in: Optional[int] = 1799
        self.multi_city_calls: List[Dict[str, Any]] = []
        self.round_trip_calls: List[Dict[str, str]] = []
        self.multi_city: Callable[[Dict[str, Any]], httpx.Response] = (
            lambda body: httpx.Response(200, json={"data": []})
        )
        self.round_trip: Callable[[Dict[str, str]], httpx.Response] = (
            lambda params: httpx.Response(200, json=offers_payload(1000.0))
        )

    @property
    def provider_calls(self) -> int:
        return self.token_calls + len(self.multi_city_calls) + len(self.round_trip_calls)

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            self.token_calls += 1
            body: Dict[str, Any] = {"access_token": f"token-{self.token_calls}-abcdefgh"}
            if self.expires_in is not None:
                body["expires_in"] = self.expires_in
            return httpx.Response(self.token_status, json=body)
        if request.method == "POST":
            body = json.loads(request.content)
            self.multi_city_calls.append(body)
            return self.multi_city(body)
        params = dict(request.url.params)
        self.round_trip_calls.append(params)
        return self.round_trip(params)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def hub_of(body: Dict[str, Any]) -> str:
    """Hub code of a multi-city request body (destination of the first leg)."""
    return body["originDestinations"][0]["destinationLocationCode"]


async def no_sleep(_seconds: float) -> None:
    return None
