"""
api/server.py
-------------
FastAPI application entry point.

Run dev server:
    cd backend
    uvicorn api.server:app --reload --port 8000

Endpoints:
    GET  /v1/health
    /v1/wizard/...   (see api/routes/wizard.py)
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import health, wizard
from modules.errors import HydrationError, TripNotFoundError, WizardStateError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Trip Draft Wizard API",
    version="1.0.0",
    description=(
        "Guided, resumable trip authoring: shared draft, gated steps, "
        "route and itinerary composition, hydration of existing trips."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# Allow the frontend (any origin during development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WizardStateError)
async def _wizard_state_error(request: Request, exc: WizardStateError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(HydrationError)
async def _hydration_error(request: Request, exc: HydrationError) -> JSONResponse:
    status = 404 if isinstance(exc, TripNotFoundError) else 502
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


app.include_router(health.router,  prefix="/v1",        tags=["Health"])
app.include_router(wizard.router,  prefix="/v1/wizard", tags=["Wizard"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=True)
