from typing import Any, Dict, Optional

import httpx
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from app.config import Settings, settings
from app.errors import AuthError, InternalError, StopoverError, ValidationError
from app.obs.logger import log_event
from app.obs.metrics import get_metrics_snapshot
from app.obs.middleware import ObservabilityMiddleware
from app.stopover.service import open_stopover_service
from app.types import SearchResponse, parse_baseline_request, parse_search_request

load_dotenv()


app = FastAPI(
    title="Stopover Search",
    version="1.0.0",
)


def get_settings() -> Settings:
    return settings


def get_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound transport; None means the real network."""
    return None


def require_bearer(
    authorization: Optional[str] = Header(None),
    cfg: Settings = Depends(get_settings),
) -> None:
    if not cfg.BEARER_KEY:
        return
    if cfg.BEARER_KEY not in (authorization or ""):
        raise HTTPException(status_code=403, detail="Forbidden: invalid or missing bearer")


async def _read_json(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object")
    return body


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": exc.code, "detail": str(exc)})


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    log_event("search_auth_failed", level="ERROR", error=str(exc))
    return JSONResponse(status_code=500, content={"error": exc.code, "detail": str(exc)})


@app.exception_handler(StopoverError)
async def stopover_error_handler(request: Request, exc: StopoverError):
    log_event("request_failed", level="ERROR", error=str(exc), code=exc.code)
    return JSONResponse(status_code=500, content={"error": InternalError.code, "detail": "Search failed"})


@app.get("/")
async def root():
    return {
        "service": "Stopover Search",
        "version": "1.0.0",
        "status": "running",
        "endpoints": ["/health", "/metrics", "/price/stopover-search", "/price/baseline", "/smoke/token"],
    }


@app.get("/health")
async def health(cfg: Settings = Depends(get_settings)):
    return {
        "ok": True,
        "env": cfg.AMADEUS_ENV,
        "amadeus_key_present": bool(cfg.AMADEUS_CLIENT_ID),
        "amadeus_secret_present": bool(cfg.AMADEUS_CLIENT_SECRET),
    }


@app.get("/metrics")
async def metrics():
    return get_metrics_snapshot()


@app.post("/price/stopover-search", dependencies=[Depends(require_bearer)])
async def stopover_search(
    request: Request,
    cfg: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    search = parse_search_request(await _read_json(request))
    log_event("search_started", origin=search.origin, hub=search.hub,
              destination=search.destination, max_tuples=search.max_tuples)

    try:
        async with open_stopover_service(cfg, transport=transport) as service:
            outcome = await service.orchestrator.search(search)
    except StopoverError:
        raise
    except Exception as e:
        # No partial results leak out of an unexpected failure
        raise InternalError(f"{type(e).__name__}: {e}") from e

    response = SearchResponse(
        env=cfg.AMADEUS_ENV,
        currency=search.currency,
        origin=search.origin,
        hub=outcome.hub,
        destination=search.destination,
        tried_hubs=outcome.tried_hubs,
        constraints=search.constraints().model_dump(mode="json", by_alias=True) | {
            "cabin": search.cabin,
            "travelerCount": search.traveler_count,
            "maxResults": search.max_results,
        },
        baseline_hint=outcome.baseline_hint,
        results=outcome.results,
    )
    log_event("search_finished", tried_hubs=outcome.tried_hubs, hub=outcome.hub,
              results=len(outcome.results))
    return response.model_dump(mode="json", by_alias=True)


@app.post("/price/baseline", dependencies=[Depends(require_bearer)])
async def baseline(
    request: Request,
    cfg: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    query = parse_baseline_request(await _read_json(request))
    # Earliest departure, latest return
    depart_date = query.depart_window.start
    return_date = query.return_window.end

    async with open_stopover_service(cfg, transport=transport) as service:
        offer = await service.pricing.price_round_trip(
            query.origin, query.destination, depart_date, return_date,
            traveler_count=query.traveler_count,
            currency=query.currency,
            cabin=query.cabin,
        )

    body: Dict[str, Any] = {
        "env": cfg.AMADEUS_ENV,
        "currency": query.currency,
        "query": {
            "origin": query.origin,
            "destination": query.destination,
            "departDate": depart_date.isoformat(),
            "returnDate": return_date.isoformat(),
            "travelerCount": query.traveler_count,
            "cabin": query.cabin,
        },
    }
    if offer is None:
        body.update({"message": "No baseline offers found", "results": []})
    else:
        body["baseline"] = {
            "total": offer.total,
            "currency": offer.currency,
            "carrierCodes": offer.carrier_codes,
        }
    return body


@app.get("/smoke/token", dependencies=[Depends(require_bearer)])
async def smoke_token(
    cfg: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    async with open_stopover_service(cfg, transport=transport) as service:
        cred = await service.tokens.acquire()
    return {"ok": True, "env": cfg.AMADEUS_ENV, "token_preview": f"...{cred.value[-8:]}"}


app.add_middleware(ObservabilityMiddleware)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
        log_level="info"
    )
