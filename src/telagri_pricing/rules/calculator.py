from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Dict, Iterator, Optional, Tuple

from .fee_tables import (
    FEES,
    FIELD_TABLES,
    ZERO,
    FeeSchedule,
    ServiceCostError,
    price_of,
)
from .tariff import TariffCode, resolve_tariff

logger = logging.getLogger(__name__)


# -------------------------------
# Data models
# -------------------------------

@dataclass(frozen=True)
class Selection:
    """Parcel attributes picked in the calculator form.

    Every attribute is a label from the resolved tariff's vocabulary
    (see ``fee_tables.TARIFF_OPTIONS``). Nothing here is validated.
    """

    crop: Optional[str] = ""
    area: Optional[str] = ""
    reservoirs: Optional[str] = ""
    outermost_distance: Optional[str] = ""
    plant_ages: Optional[str] = ""
    varieties: Optional[str] = ""
    road_distance: Optional[str] = ""

    def is_complete(self) -> bool:
        return all(getattr(self, f.name) for f in fields(self))

    def with_field(self, name: str, value: Optional[str]) -> "Selection":
        return replace(self, **{name: value})


@dataclass(frozen=True)
class PartsBreakdown:
    crop_base: Decimal = ZERO
    area: Decimal = ZERO
    reservoirs: Decimal = ZERO
    outermost_distance: Decimal = ZERO
    plant_age_groups: Decimal = ZERO
    varieties: Decimal = ZERO
    road_distance: Decimal = ZERO

    def items(self) -> Iterator[Tuple[str, Decimal]]:
        for f in fields(self):
            yield f.name, getattr(self, f.name)

    def as_dict(self) -> Dict[str, Decimal]:
        return dict(self.items())


@dataclass(frozen=True)
class CalculationResult:
    tariff: TariffCode
    parts: PartsBreakdown
    total: Decimal


class UnresolvedLabelError(ServiceCostError, KeyError):
    """Raised by ``calculate_strict`` when attribute labels have no fee entry."""

    def __init__(self, tariff: TariffCode, unresolved: Dict[str, Optional[str]]):
        super().__init__(sorted(unresolved))
        self.tariff = tariff
        self.fields = dict(unresolved)

    def __str__(self) -> str:
        listed = ", ".join(f"{name}={label!r}" for name, label in self.fields.items())
        return f"unresolved labels under {self.tariff.value}: {listed}"


# Selection attribute -> PartsBreakdown field
_PART_NAMES = {
    "area": "area",
    "reservoirs": "reservoirs",
    "outermost_distance": "outermost_distance",
    "plant_ages": "plant_age_groups",
    "varieties": "varieties",
    "road_distance": "road_distance",
}


# -------------------------------
# Calculation
# -------------------------------

def calculate(selection: Selection, fees: Optional[FeeSchedule] = None) -> CalculationResult:
    """Price ``selection``: tariff base fee plus one fee per attribute.

    Labels that do not resolve under the selection's tariff contribute 0.
    """
    schedule = FEES if fees is None else fees
    tariff = resolve_tariff(selection.crop)

    amounts: Dict[str, Decimal] = {"crop_base": schedule[tariff]["crop_base"]}
    for field_name, table_name in FIELD_TABLES.items():
        label = getattr(selection, field_name)
        amounts[_PART_NAMES[field_name]] = price_of(tariff, table_name, label, schedule)

    parts = PartsBreakdown(**amounts)
    total = sum((amount for _, amount in parts.items()), ZERO)
    return CalculationResult(tariff=tariff, parts=parts, total=total)


def unresolved_fields(
    selection: Selection, fees: Optional[FeeSchedule] = None
) -> Dict[str, Optional[str]]:
    """Attributes whose label has no entry in the resolved tariff's table."""
    schedule = FEES if fees is None else fees
    tariff = resolve_tariff(selection.crop)
    tables = schedule[tariff]

    unresolved: Dict[str, Optional[str]] = {}
    for field_name, table_name in FIELD_TABLES.items():
        label = getattr(selection, field_name)
        if not label or label not in tables.get(table_name, {}):
            unresolved[field_name] = label
    return unresolved


def calculate_strict(selection: Selection, fees: Optional[FeeSchedule] = None) -> CalculationResult:
    """Like ``calculate`` but raise ``UnresolvedLabelError`` instead of pricing a label at 0."""
    unresolved = unresolved_fields(selection, fees)
    if unresolved:
        tariff = resolve_tariff(selection.crop)
        logger.info("strict calculation rejected %s under %s", sorted(unresolved), tariff.value)
        raise UnresolvedLabelError(tariff, unresolved)
    return calculate(selection, fees)
