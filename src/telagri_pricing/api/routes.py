# src/telagri_pricing/api/routes.py
"""
Service cost calculator routes.

Notes:
- Amounts are serialized as 2-decimal strings.
- The crop picker offers base crop names; option lists follow the tariff the
  crop resolves to, so clients should refetch /options whenever the crop changes.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ..rules.calculator import (
    CalculationResult,
    Selection,
    UnresolvedLabelError,
    calculate,
    calculate_strict,
)
from ..rules.fee_tables import options_for
from ..rules.schedule_loader import get_fee_schedule
from ..rules.tariff import ALLOWED_CROPS, resolve_tariff
from ..settings import settings

logger = logging.getLogger("service-cost-api")

router = APIRouter(tags=["Service Cost"])

# ============ Pydantic Models ============

class SelectionInput(BaseModel):
    crop: Optional[str] = Field("", example="Grapes")
    area: Optional[str] = Field("", example="0–5 ha")
    reservoirs: Optional[str] = Field("", example="0–1")
    outermost_distance: Optional[str] = Field("", example="Less than 100 m.")
    plant_ages: Optional[str] = Field("", example="1")
    varieties: Optional[str] = Field("", example="1")
    road_distance: Optional[str] = Field("", example="Up to 1 km")

    def to_selection(self) -> Selection:
        return Selection(
            crop=self.crop,
            area=self.area,
            reservoirs=self.reservoirs,
            outermost_distance=self.outermost_distance,
            plant_ages=self.plant_ages,
            varieties=self.varieties,
            road_distance=self.road_distance,
        )


def _money(x: Decimal | int | float | str) -> Decimal:
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_total(amount: Decimal, symbol: str) -> str:
    """Display form of a quote total, e.g. ``€1,750`` or ``€1,750.50``."""
    value = _money(amount)
    if value == value.to_integral_value():
        return f"{symbol}{value:,.0f}"
    return f"{symbol}{value:,.2f}"


def _result_payload(selection: Selection, result: CalculationResult) -> Dict[str, Any]:
    return {
        "tariff": result.tariff.value,
        "parts": {name: str(_money(amount)) for name, amount in result.parts.items()},
        "total": str(_money(result.total)),
        "currency": settings.currency.upper(),
        "formatted_total": format_total(result.total, settings.currency_symbol),
        "complete": selection.is_complete(),
    }


# ============ Endpoints ============

@router.get("/crops")
def list_crops() -> List[str]:
    return list(ALLOWED_CROPS)


@router.get("/tariff")
def get_tariff(crop: str = Query("", description="Crop name, with or without intensity qualifier")) -> Dict[str, str]:
    return {"crop": crop, "tariff": resolve_tariff(crop).value}


@router.get("/options")
def get_options(crop: str = Query("", description="Crop name")) -> Dict[str, Any]:
    tariff = resolve_tariff(crop)
    return {
        "crop": crop,
        "tariff": tariff.value,
        "options": {name: list(labels) for name, labels in options_for(tariff).items()},
    }


@router.post("/calculate")
def calculate_cost(
    body: SelectionInput,
    strict: Optional[bool] = Query(None, description="Reject labels that have no fee instead of pricing them at 0"),
) -> Dict[str, Any]:
    selection = body.to_selection()
    use_strict = settings.strict_labels if strict is None else strict
    try:
        fees = get_fee_schedule()
        if use_strict:
            result = calculate_strict(selection, fees)
        else:
            result = calculate(selection, fees)
    except UnresolvedLabelError as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "unresolved labels",
                "tariff": exc.tariff.value,
                "fields": exc.fields,
            },
        )
    except Exception:
        logger.exception("Service cost calculation failed")
        raise HTTPException(status_code=500, detail="service cost calculation failed")
    return _result_payload(selection, result)
