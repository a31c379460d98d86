from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import router as service_cost_router
from ..rules.schedule_loader import get_fee_schedule, schedule_source
from ..settings import settings

# ---------------- Logging ----------------
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("service-cost-api")

API_VERSION = "1.0.0"

# ---------- App ----------
app = FastAPI(
    title="TelAgri Service Cost Calculator",
    version=API_VERSION,
    description="Tariff-based service cost quotes for monitored farms",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.include_router(service_cost_router)

# ----- CORS -----
allow_origins = settings.origins
allow_all = (len(allow_origins) == 1 and allow_origins[0] == "*")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    # Browsers disallow credentials with "*"
    allow_credentials=not allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup():
    """Load the fee schedule once so a broken schedule file fails at boot."""
    get_fee_schedule()
    logger.info("Startup complete, fee schedule source: %s", schedule_source())


@app.get("/health", tags=["System"])
def health() -> Dict[str, Any]:
    schedule_ok = True
    try:
        get_fee_schedule()
    except Exception:
        logger.exception("Fee schedule unavailable")
        schedule_ok = False
    return {
        "status": "ok" if schedule_ok else "degraded",
        "version": API_VERSION,
        "schedule": schedule_source(),
        "schedule_ok": schedule_ok,
    }
