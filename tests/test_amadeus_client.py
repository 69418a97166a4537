from datetime import date

import httpx
import pytest

from app.amadeus.auth import TokenManager
from app.amadeus.client import AmadeusClient
from app.amadeus.transform import pick_cheapest
from app.errors import AuthError, ProviderError
from app.infrastructure.resilience import ResilientCaller
from app.types import CandidateTuple
from tests.helpers import no_sleep, offers_payload

TUPLE = CandidateTuple(
    outbound_date=date(2025, 11, 20),
    hub_depart_date=date(2025, 11, 22),
    hub_return_date=date(2025, 12, 2),
    inbound_date=date(2025, 12, 4),
    pre_offset=2,
    dwell_days=10,
    post_offset=2,
)


def make_client(http, client_id="client-id", client_secret="client-secret"):
    caller = ResilientCaller(http, timeout_ms=1000, max_retries=2, sleep=no_sleep)
    tokens = TokenManager(caller, host="https://test.api.amadeus.com",
                          client_id=client_id, client_secret=client_secret)
    return AmadeusClient(tokens, caller)


class TestMultiLegPricing:
    async def test_builds_four_legs_with_stable_ids(self, fake_amadeus):
        fake_amadeus.multi_city = lambda body: httpx.Response(200, json=offers_payload(850.0))
        async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
            client = make_client(http)
            offer = await client.price_multi_leg("YUL", "CDG", "ATH", TUPLE,
                                                 traveler_count=2, currency="CAD", cabin="BUSINESS")

        assert offer.total == 850.0
        body = fake_amadeus.multi_city_calls[0]
        assert body["currencyCode"] == "CAD"
        assert body["sources"] == ["GDS"]

        legs = body["originDestinations"]
        assert [leg["id"] for leg in legs] == ["1", "2", "3", "4"]
        assert [(leg["originLocationCode"], leg["destinationLocationCode"]) for leg in legs] == [
            ("YUL", "CDG"), ("CDG", "ATH"), ("ATH", "CDG"), ("CDG", "YUL"),
        ]
        assert [leg["departureDateTimeRange"]["date"] for leg in legs] == [
            "2025-11-20", "2025-11-22", "2025-12-02", "2025-12-04",
        ]

        restriction = body["searchCriteria"]["flightFilters"]["cabinRestrictions"][0]
        assert restriction["cabin"] == "BUSINESS"
        assert restriction["coverage"] == "MOST_SEGMENTS"
        assert restriction["originDestinationIds"] == ["1", "2", "3", "4"]

        trav = body["travelers"]
        assert trav == [{"id": "1", "travelerType": "ADULT"}, {"id": "2", "travelerType": "ADULT"}]

    async def test_sends_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "TEST_TOKEN", "expires_in": 1799})
            seen["auth"] = request.headers["authorization"]
            seen["content_type"] = request.headers["content-type"]
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"data": []})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            offer = await make_client(http).price_multi_leg("YUL", "CDG", "ATH", TUPLE)

        assert offer is None
        assert seen["auth"] == "Bearer TEST_TOKEN"
        assert seen["content_type"] == "application/json"
        assert seen["url"].endswith("/v2/shopping/flight-offers")

    async def test_non_success_becomes_provider_error(self, fake_amadeus):
        fake_amadeus.multi_city = lambda body: httpx.Response(400, json={"errors": [{"code": 477}]})
        async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
            with pytest.raises(ProviderError) as exc:
                await make_client(http).price_multi_leg("YUL", "CDG", "ATH", TUPLE)

        assert exc.value.status == 400

    async def test_unauthorized_drops_cached_token(self, fake_amadeus):
        fake_amadeus.multi_city = lambda body: httpx.Response(401, json={"errors": []})
        async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
            client = make_client(http)
            for _ in range(2):
                with pytest.raises(ProviderError):
                    await client.price_multi_leg("YUL", "CDG", "ATH", TUPLE)

        assert fake_amadeus.token_calls == 2

    async def test_auth_error_propagates_unchanged(self, fake_amadeus):
        fake_amadeus.token_status = 403
        async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
            with pytest.raises(AuthError):
                await make_client(http).price_multi_leg("YUL", "CDG", "ATH", TUPLE)

        assert fake_amadeus.multi_city_calls == []


class TestRoundTripPricing:
    async def test_query_parameters(self, fake_amadeus):
        fake_amadeus.round_trip = lambda params: httpx.Response(200, json=offers_payload(700.0, 650.0))
        async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
            offer = await make_client(http).price_round_trip(
                "YUL", "ATH", date(2025, 11, 22), date(2025, 12, 2),
                traveler_count=1, currency="EUR", cabin="ECONOMY",
            )

        assert offer.total == 650.0
        params = fake_amadeus.round_trip_calls[0]
        assert params == {
            "originLocationCode": "YUL",
            "destinationLocationCode": "ATH",
            "departureDate": "2025-11-22",
            "returnDate": "2025-12-02",
            "adults": "1",
            "travelClass": "ECONOMY",
            "currencyCode": "EUR",
            "max": "50",
        }

    async def test_transient_then_success(self, fake_amadeus):
        statuses = iter([503, 503, 200])

        def respond(params):
            status = next(statuses)
            if status != 200:
                return httpx.Response(status)
            return httpx.Response(200, json=offers_payload(512.0))

        fake_amadeus.round_trip = respond
        async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
            offer = await make_client(http).price_round_trip(
                "YUL", "ATH", date(2025, 11, 22), date(2025, 12, 2))

        assert offer.total == 512.0
        assert len(fake_amadeus.round_trip_calls) == 3


class TestPickCheapest:
    def test_picks_minimum_total(self):
        offer = pick_cheapest(offers_payload(900.0, 450.5, 610.0))
        assert offer.total == 450.5
        assert offer.currency == "CAD"
        assert offer.carrier_codes == ["AF"]
        assert offer.leg_durations == ["PT7H30M"]

    def test_missing_price_sorts_last(self):
        offer = pick_cheapest(offers_payload(None, 700.0))
        assert offer.total == 700.0

    def test_all_missing_returns_first_offer(self):
        payload = offers_payload(None, None)
        payload["data"][0]["validatingAirlineCodes"] = ["LH"]
        offer = pick_cheapest(payload)
        assert offer.total is None
        assert offer.carrier_codes == ["LH"]

    @pytest.mark.parametrize("payload", [{"data": []}, {}, {"data": None}, None])
    def test_no_offers_returns_none(self, payload):
        assert pick_cheapest(payload) is None

    def test_grand_total_and_segment_carriers_fallback(self):
        payload = {"data": [{
            "price": {"grandTotal": "321.00", "currency": "USD"},
            "itineraries": [{"duration": "PT2H", "segments": [{"carrierCode": "A3"}, {"carrierCode": "OA"}]}],
        }]}
        offer = pick_cheapest(payload)
        assert offer.total == 321.0
        assert offer.carrier_codes == ["A3", "OA"]

    @pytest.mark.parametrize("offers", [
        [{"price": 5}],
        ["not-an-offer"],
        [{"price": {"total": "10.00", "currency": "CAD"}, "itineraries": ["PT2H"]}],
    ])
    def test_malformed_offers_raise_provider_error(self, offers):
        with pytest.raises(ProviderError, match="invalid offers payload"):
            pick_cheapest({"data": offers})

    async def test_malformed_offer_surfaces_as_provider_error(self, fake_amadeus):
        fake_amadeus.multi_city = lambda body: httpx.Response(200, json={"data": [{"price": 5}]})
        async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
            with pytest.raises(ProviderError):
                await make_client(http).price_multi_leg("YUL", "CDG", "ATH", TUPLE)
