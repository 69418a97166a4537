from typing import Any, Dict, List, Optional

from app.errors import ProviderError
from app.types import Offer


def _price_total(raw: Dict[str, Any]) -> Optional[float]:
    price = raw.get("price") or {}
    value = price.get("total", price.get("grandTotal"))
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _carrier_codes(raw: Dict[str, Any]) -> List[str]:
    codes = list(raw.get("validatingAirlineCodes") or [])
    if codes:
        return codes
    # Fall back to the operating carriers of each segment, first-seen order
    seen: List[str] = []
    for itin in raw.get("itineraries") or []:
        for seg in itin.get("segments") or []:
            code = seg.get("carrierCode")
            if code and code not in seen:
                seen.append(code)
    return seen


def to_offer(raw: Dict[str, Any]) -> Offer:
    price = raw.get("price") or {}
    return Offer(
        total=_price_total(raw),
        currency=price.get("currency"),
        carrier_codes=_carrier_codes(raw),
        leg_durations=[i.get("duration", "") for i in raw.get("itineraries") or []],
    )


def pick_cheapest(payload: Any) -> Optional[Offer]:
    """Cheapest offer in an Amadeus flight-offers response.

    Offers without a usable total sort last; sorted() is stable, so when no
    offer has a price the first one returned by the provider wins. Returns
    None when the response carries no offers; raises ProviderError when the
    offers are not shaped like Amadeus offers.
    """
    offers = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(offers, list) or not offers:
        return None

    def sort_key(o: Dict[str, Any]) -> float:
        total = _price_total(o)
        return float("inf") if total is None else total

    try:
        return to_offer(sorted(offers, key=sort_key)[0])
    except (AttributeError, TypeError, ValueError) as e:
        raise ProviderError(f"invalid offers payload: {type(e).__name__}: {e}") from e
