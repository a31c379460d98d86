"""Per-tariff service fee tables.

Every attribute table is keyed by the exact label shown in the calculator
form. Labels are matched byte-for-byte: T1 and T2 spell some buckets
differently (``"Less than 100 m."`` vs ``"Less than 100 m"``, ``"1–3 km"`` vs
``"1 km – 3 km"``), and most ranges use an en-dash rather than a hyphen.
A label that is absent from the resolved tariff's table prices at 0.

``TARIFF_OPTIONS`` is the vocabulary the form presents for each tariff;
``check_vocabulary`` runs at import so that an option without a fee entry
fails loudly instead of quoting 0.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .tariff import TariffCode

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

FeeTable = Mapping[str, Decimal]
TariffFees = Mapping[str, Union[Decimal, FeeTable]]
FeeSchedule = Mapping[TariffCode, TariffFees]

MORE_THAN_TEN = "More than 10"

# Selection attribute -> fee table name
FIELD_TABLES: Mapping[str, str] = MappingProxyType({
    "area": "area_fee",
    "reservoirs": "reservoirs_fee",
    "outermost_distance": "outermost_distance_fee",
    "plant_ages": "plant_age_groups_fee",
    "varieties": "variety_count_fee",
    "road_distance": "road_distance_fee",
})

TABLE_NAMES: Tuple[str, ...] = tuple(FIELD_TABLES.values())


class ServiceCostError(Exception):
    """Base class for service cost calculation errors."""


class VocabularyMismatch(ServiceCostError, ValueError):
    """Raised when an offered option label has no entry in its fee table."""

    def __init__(self, missing: List[Tuple[str, str, str]]):
        self.missing = missing
        listed = ", ".join(f"{t}.{table}[{label!r}]" for t, table, label in missing)
        super().__init__(f"option labels without a fee: {listed}")


def _table(entries: Mapping[str, Union[int, str, Decimal]]) -> FeeTable:
    return MappingProxyType({label: Decimal(str(value)) for label, value in entries.items()})


def label_range(
    start: int,
    end: int,
    base: Union[int, Decimal],
    step: Union[int, Decimal],
    more_label: str,
    more_value: Union[int, Decimal],
) -> FeeTable:
    """Build a count table: ``str(i)`` -> ``base + (i - start) * step`` for
    ``start..end`` inclusive, plus a flat ``more_label`` -> ``more_value`` bucket.
    """
    base = Decimal(str(base))
    step = Decimal(str(step))
    entries: Dict[str, Decimal] = {}
    for i in range(start, end + 1):
        entries[str(i)] = base + (i - start) * step
    entries[more_label] = Decimal(str(more_value))
    return MappingProxyType(entries)


FEES: FeeSchedule = MappingProxyType({
    TariffCode.T1: MappingProxyType({
        "crop_base": Decimal("500"),
        "area_fee": _table({
            "0–5 ha": 200, "6–10 ha": 400, "11–15 ha": 600, "16–20 ha": 800,
            "21–30 ha": 1000, "31–40 ha": 1200, "41–50 ha": 1400, "51–70 ha": 1600,
            "71–100 ha": 1800, "101–150 ha": 2000, "151–200 ha": 2200,
            "201–300 ha": 2400, "301–500 ha": 2600, "Over 500 hectares": 2800,
        }),
        "reservoirs_fee": _table({
            "0–1": 500, "2": 1000, "3": 1500, "4": 2000, "5": 2500, "6 or more": 5000,
        }),
        "outermost_distance_fee": _table({
            "Less than 100 m.": 100, "100–300 m.": 250, "300 m – 1 km": 500,
            "1–3 km": 1000, "More than 3 km": 3000,
        }),
        "plant_age_groups_fee": label_range(1, 9, 200, 200, MORE_THAN_TEN, 2000),
        "variety_count_fee": label_range(1, 9, 200, 200, MORE_THAN_TEN, 2000),
        "road_distance_fee": _table({
            "Up to 1 km": 50, "1–3 km": 100, "3–10 km": 200, "More than 10 km": 300,
        }),
    }),
    TariffCode.T2: MappingProxyType({
        "crop_base": Decimal("500"),
        "area_fee": _table({
            "0–5 ha": 100, "6–10 ha": 200, "11–15 ha": 300, "16–20 ha": 400,
            "21–30 ha": 500, "31–40 ha": 600, "41–50 ha": 700, "51–70 ha": 800,
            "71–100 ha": 900, "101–150 ha": 1000, "151–200 ha": 1100,
            "201–300 ha": 1200, "301–500 ha": 1300, "> 500 ha": 1400,
        }),
        # No "6 or more" bucket under T2; that label prices at 0.
        "reservoirs_fee": _table({
            "0–1": 500, "2": 1000, "3": 1500, "4": 2000, "5": 2500,
        }),
        "outermost_distance_fee": _table({
            "Less than 100 m": 100, "100–300 m": 250, "300 m – 1 km": 500,
            "1 km – 3 km": 1000, "More than 3 km": 3000,
        }),
        "plant_age_groups_fee": label_range(1, 9, 100, 100, MORE_THAN_TEN, 1000),
        "variety_count_fee": label_range(1, 9, 100, 100, MORE_THAN_TEN, 1000),
        "road_distance_fee": _table({
            "Up to 1 km": 50, "1–3 km": 100, "3–10 km": 200, "More than 10 km": 300,
        }),
    }),
})

_COUNTS = tuple(str(i) for i in range(1, 10)) + (MORE_THAN_TEN,)

TARIFF_OPTIONS: Mapping[TariffCode, Mapping[str, Tuple[str, ...]]] = MappingProxyType({
    TariffCode.T1: MappingProxyType({
        "area": (
            "0–5 ha", "6–10 ha", "11–15 ha", "16–20 ha", "21–30 ha", "31–40 ha",
            "41–50 ha", "51–70 ha", "71–100 ha", "101–150 ha", "151–200 ha",
            "201–300 ha", "301–500 ha", "Over 500 hectares",
        ),
        "reservoirs": ("0–1", "2", "3", "4", "5", "6 or more"),
        "outermost_distance": (
            "Less than 100 m.", "100–300 m.", "300 m – 1 km", "1–3 km", "More than 3 km",
        ),
        "plant_ages": _COUNTS,
        "varieties": _COUNTS,
        "road_distance": ("Up to 1 km", "1–3 km", "3–10 km", "More than 10 km"),
    }),
    TariffCode.T2: MappingProxyType({
        "area": (
            "0–5 ha", "6–10 ha", "11–15 ha", "16–20 ha", "21–30 ha", "31–40 ha",
            "41–50 ha", "51–70 ha", "71–100 ha", "101–150 ha", "151–200 ha",
            "201–300 ha", "301–500 ha", "> 500 ha",
        ),
        "reservoirs": ("0–1", "2", "3", "4", "5"),
        "outermost_distance": (
            "Less than 100 m", "100–300 m", "300 m – 1 km", "1 km – 3 km", "More than 3 km",
        ),
        "plant_ages": _COUNTS,
        "varieties": _COUNTS,
        "road_distance": ("Up to 1 km", "1–3 km", "3–10 km", "More than 10 km"),
    }),
})


def options_for(tariff: TariffCode) -> Mapping[str, Tuple[str, ...]]:
    return TARIFF_OPTIONS[TariffCode(tariff)]


def price_of(
    tariff: TariffCode,
    table_name: str,
    label: Optional[str],
    fees: Optional[FeeSchedule] = None,
) -> Decimal:
    """Fee for ``label`` in ``table_name`` under ``tariff``; 0 when anything is missing."""
    if not label:
        return ZERO
    schedule = FEES if fees is None else fees
    table = schedule.get(tariff, {}).get(table_name)
    if not isinstance(table, Mapping):
        return ZERO
    value = table.get(label)
    if value is None:
        logger.debug("no %s entry for %r under %s", table_name, label, tariff)
        return ZERO
    return value


def check_vocabulary(
    fees: FeeSchedule,
    options: Mapping[TariffCode, Mapping[str, Tuple[str, ...]]] = TARIFF_OPTIONS,
) -> None:
    """Raise ``VocabularyMismatch`` if any offered option has no fee entry."""
    missing: List[Tuple[str, str, str]] = []
    for tariff, fields in options.items():
        tables = fees.get(tariff, {})
        for field_name, labels in fields.items():
            table_name = FIELD_TABLES[field_name]
            table = tables.get(table_name)
            if not isinstance(table, Mapping):
                table = {}
            for label in labels:
                if label not in table:
                    missing.append((TariffCode(tariff).value, table_name, label))
    if missing:
        raise VocabularyMismatch(missing)


check_vocabulary(FEES)
