from datetime import date, timedelta
from typing import Any, Dict, Iterator, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.errors import ValidationError

Cabin = Literal["ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST"]


def _check_iata(value: Any) -> Any:
    if value is None:
        return value
    if not isinstance(value, str) or len(value.strip()) != 3 or not value.strip().isalpha():
        raise ValueError("must be a 3-letter IATA code")
    return value.strip().upper()


def _check_currency(value: Any) -> Any:
    if not isinstance(value, str) or len(value) != 3:
        raise ValueError("must be a 3-letter currency code")
    return value.upper()


def _check_cabin(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


class CamelModel(BaseModel):
    # Accept both camelCase (wire) and snake_case (python) names
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DateWindow(CamelModel):
    """Inclusive date range. Accepts a ["YYYY-MM-DD", "YYYY-MM-DD"] pair."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError('must be ["YYYY-MM-DD","YYYY-MM-DD"]')
            return {"start": value[0], "end": value[1]}
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "DateWindow":
        if self.end < self.start:
            raise ValueError("end date is before start date")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self, limit: Optional[int] = None) -> Iterator[date]:
        count = (self.end - self.start).days + 1
        if limit is not None:
            count = max(1, min(count, limit))
        for i in range(count):
            yield self.start + timedelta(days=i)


class OffsetRange(CamelModel):
    """Inclusive integer day range. Accepts a [min, max] pair."""

    model_config = ConfigDict(frozen=True)

    min: int = Field(ge=0)
    max: int = Field(ge=0)

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError("must be [min,max]")
            return {"min": value[0], "max": value[1]}
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "OffsetRange":
        if self.max < self.min:
            raise ValueError("max is below min")
        return self

    def values(self) -> range:
        return range(self.min, self.max + 1)

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max


class Leg(CamelModel):
    origin: str
    destination: str
    departure_date: date


class CandidateTuple(CamelModel):
    """One concrete date assignment for the four legs."""

    model_config = ConfigDict(frozen=True)

    outbound_date: date      # origin -> hub
    hub_depart_date: date    # hub -> destination
    hub_return_date: date    # destination -> hub
    inbound_date: date       # hub -> origin
    pre_offset: int
    dwell_days: int
    post_offset: int

    def legs(self, origin: str, hub: str, destination: str) -> List[Leg]:
        return [
            Leg(origin=origin, destination=hub, departure_date=self.outbound_date),
            Leg(origin=hub, destination=destination, departure_date=self.hub_depart_date),
            Leg(origin=destination, destination=hub, departure_date=self.hub_return_date),
            Leg(origin=hub, destination=origin, departure_date=self.inbound_date),
        ]


class TupleConstraints(CamelModel):
    depart_window: DateWindow
    return_window: DateWindow
    pre_offset_range: OffsetRange
    dwell_range: OffsetRange
    post_offset_range: OffsetRange
    max_tuples: int = Field(30, ge=1)


class Offer(CamelModel):
    total: Optional[float] = None
    currency: Optional[str] = None
    carrier_codes: List[str] = Field(default_factory=list)
    leg_durations: List[str] = Field(default_factory=list)


class TupleOutcome(CamelModel):
    """Result of pricing a single tuple: either an offer or a skip reason."""

    tuple: CandidateTuple
    hub: str
    offer: Optional[Offer] = None
    skip_reason: Optional[str] = None
    detail: Optional[str] = None

    @property
    def priced(self) -> bool:
        return self.offer is not None


class BaselineFare(CamelModel):
    total: Optional[float] = None
    currency: Optional[str] = None
    # Baseline dates only approximate the stopover itinerary's dates
    approximate: bool = True


class SearchResult(CamelModel):
    tuple: CandidateTuple
    hub: str
    price: Optional[float] = None
    currency: Optional[str] = None
    deeplink: str
    baseline: Optional[BaselineFare] = None
    delta_vs_baseline: Optional[float] = None
    carrier_codes: List[str] = Field(default_factory=list)
    leg_durations: List[str] = Field(default_factory=list)


class SearchRequest(CamelModel):
    origin: str
    hub: Optional[str] = None
    destination: str
    depart_window: DateWindow
    return_window: DateWindow
    pre_offset_range: OffsetRange = OffsetRange(min=0, max=2)
    dwell_range: OffsetRange
    post_offset_range: OffsetRange = OffsetRange(min=0, max=2)
    traveler_count: int = Field(1, ge=1, le=9)
    currency: str = "CAD"
    cabin: Cabin = "ECONOMY"
    max_tuples: int = Field(30, ge=1, le=200)
    max_results: int = Field(10, ge=1, le=50)
    allow_fallback_hubs: bool = False

    @field_validator("origin", "destination", "hub", mode="before")
    @classmethod
    def _iata(cls, value: Any) -> Any:
        return _check_iata(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, value: Any) -> Any:
        return _check_currency(value)

    @field_validator("cabin", mode="before")
    @classmethod
    def _cabin(cls, value: Any) -> Any:
        return _check_cabin(value)

    @model_validator(mode="after")
    def _check_route(self) -> "SearchRequest":
        if self.origin == self.destination:
            raise ValueError("origin and destination must differ")
        if self.hub is None and not self.allow_fallback_hubs:
            raise ValueError("hub is required unless allowFallbackHubs is true")
        if self.hub is not None and self.hub in (self.origin, self.destination):
            raise ValueError("hub must differ from origin and destination")
        return self

    def constraints(self) -> TupleConstraints:
        return TupleConstraints(
            depart_window=self.depart_window,
            return_window=self.return_window,
            pre_offset_range=self.pre_offset_range,
            dwell_range=self.dwell_range,
            post_offset_range=self.post_offset_range,
            max_tuples=self.max_tuples,
        )


class BaselineRequest(CamelModel):
    origin: str
    destination: str
    depart_window: DateWindow
    return_window: DateWindow
    traveler_count: int = Field(1, ge=1, le=9)
    currency: str = "CAD"
    cabin: Cabin = "ECONOMY"

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def _iata(cls, value: Any) -> Any:
        return _check_iata(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, value: Any) -> Any:
        return _check_currency(value)

    @field_validator("cabin", mode="before")
    @classmethod
    def _cabin(cls, value: Any) -> Any:
        return _check_cabin(value)

    @model_validator(mode="after")
    def _check_route(self) -> "BaselineRequest":
        if self.origin == self.destination:
            raise ValueError("origin and destination must differ")
        return self


class SearchResponse(CamelModel):
    env: str
    currency: str
    origin: str
    hub: Optional[str] = None
    destination: str
    tried_hubs: List[str] = Field(default_factory=list)
    constraints: Dict[str, Any] = Field(default_factory=dict)
    baseline_hint: str
    results: List[SearchResult] = Field(default_factory=list)


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def parse_search_request(payload: Dict[str, Any]) -> SearchRequest:
    """Validate an inbound search body, raising ValidationError on bad input."""
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    try:
        return SearchRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from e


def parse_baseline_request(payload: Dict[str, Any]) -> BaselineRequest:
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    try:
        return BaselineRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from e
