"""Mock Mercury server answering every lookup with one canned v0.2 report."""

from __future__ import annotations

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

LOGGER = logging.getLogger(__name__)

DEFAULT_LISTEN = "127.0.0.1"
DEFAULT_PORT = 8080

DEFAULT_MERCURY_V2_REPORT = (
    "0x"
    "0001c38d71fed6c320b90e84b6f559459814d068e2a1700adc931ca9717d4fe7"
    "0000000000000000000000000000000000000000000000000000000001a80b52"
    "b4bf1233f9cb71144a253a1791b202113c4ab4a92fa1b176d684b4959666ff82"
    "00000000000000000000000000000000000000000000000000000000000000e0"
    "0000000000000000000000000000000000000000000000000000000000000200"
    "0000000000000000000000000000000000000000000000000000000000000260"
    "0000000000000000000000000000000000000000000000000000000000000000"
    "0000000000000000000000000000000000000000000000000000000000000100"
    "4254432d5553442d415242495452554d2d544553544e45540000000000000000"
    "00000000000000000000000000000000000000000000000000000000645570be"
    "000000000000000000000000000000000000000000000000000002af2b818dc5"
    "000000000000000000000000000000000000000000000000000002af2426faf3"
    "000000000000000000000000000000000000000000000000000002af32dc2097"
    "00000000000000000000000000000000000000000000000000000000012130f8"
    "df0a9745bb6ad5e2df605e158ba8ad8a33ef8a0acf9851f0f01668a3a3f2b686"
    "00000000000000000000000000000000000000000000000000000000012130f6"
    "0000000000000000000000000000000000000000000000000000000000000002"
    "c4a7958dce105089cf5edb68dad7dcfe8618d7784eb397f97d5a5fade78c11a5"
    "8275aebda478968e545f7e3657aba9dcbe8d44605e4c6fde3e24edd5e22c9427"
    "0000000000000000000000000000000000000000000000000000000000000002"
    "459c12d33986018a8959566d145225f0c4a4e61a9a3f50361ccff397899314f0"
    "018162cf10cd89897635a0bb62a822355bd199d09f4abe76e4d05261bb44733d"
)


def create_app(registry: Optional[CollectorRegistry] = None) -> FastAPI:
    """Build the mock server; ``/metrics`` is reserved for Prometheus."""

    registry = registry or CollectorRegistry(auto_describe=True)
    served = Counter(
        "automation_mercury_reports_served_total",
        "Mock Mercury reports returned to callers",
        registry=registry,
    )
    app = FastAPI(title="Mock Mercury", version="0.2")

    @app.get("/metrics")
    async def prometheus_metrics() -> PlainTextResponse:
        return PlainTextResponse(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/{path:path}")
    async def report(path: str, request: Request) -> JSONResponse:
        LOGGER.info("mercury request %s", request.url.path, extra={"data": dict(request.query_params)})
        served.inc()
        return JSONResponse({"chainlinkBlob": DEFAULT_MERCURY_V2_REPORT})

    return app


def serve(listen: str = DEFAULT_LISTEN, port: int = DEFAULT_PORT) -> None:
    LOGGER.info("serving mock mercury on %s:%d", listen, port)
    uvicorn.run(create_app(), host=listen, port=port, log_level="warning")


__all__ = ["DEFAULT_LISTEN", "DEFAULT_MERCURY_V2_REPORT", "DEFAULT_PORT", "create_app", "serve"]
