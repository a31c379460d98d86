"""Fee schedule loader.

The built-in ``FEES`` tables are used unless a JSON schedule is configured
(``SERVICE_COST_SCHEDULE_PATH`` or an explicit path). A schedule file maps each
tariff code to its seven entries; count tables may be given either literally or
as a ``{"range": {...}}`` spec expanded with ``label_range``.
"""
from __future__ import annotations

import json
import logging
import os
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..settings import settings
from .fee_tables import (
    FEES,
    TABLE_NAMES,
    FeeSchedule,
    FeeTable,
    check_vocabulary,
    label_range,
)
from .tariff import TariffCode

__all__ = [
    "MissingFeeTable",
    "get_fee_schedule",
    "load_fee_schedule",
    "schedule_source",
]

logger = logging.getLogger(__name__)


class MissingFeeTable(KeyError):
    """Raised when a fee schedule lacks a required tariff or table."""

    def __init__(self, field_path: str):
        super().__init__(field_path)
        self.field_path = field_path

    def __str__(self) -> str:
        return f"missing required fee table: {self.field_path}"


_REQUIRED_RANGE_KEYS = ("start", "end", "base", "step", "more_label", "more_value")


def _resolve_schedule_path(path: str | os.PathLike[str] | None) -> Optional[Path]:
    if path is not None:
        return Path(path)
    if settings.schedule_path:
        return Path(settings.schedule_path)
    return None


def _to_amount(value: Any, where: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{where}: not a number: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"{where}: not a finite fee: {value!r}")
    if amount < 0:
        raise ValueError(f"{where}: negative fee {amount}")
    return amount


def _to_bound(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{where}: not an integer: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{where}: not an integer: {value!r}")
    return int(value)


def _normalise_table(where: str, raw: Any) -> FeeTable:
    if not isinstance(raw, Mapping):
        raise ValueError(f"{where} must be a mapping of label to fee")

    if "range" in raw:
        extra = sorted(str(k) for k in raw if k != "range")
        if extra:
            raise ValueError(f"{where}: labels next to a range spec: {extra}")
        spec = raw["range"]
        if not isinstance(spec, Mapping):
            raise ValueError(f"{where}.range must be a mapping")
        for key in _REQUIRED_RANGE_KEYS:
            if key not in spec:
                raise MissingFeeTable(f"{where}.range.{key}")
        return label_range(
            _to_bound(spec["start"], f"{where}.range.start"),
            _to_bound(spec["end"], f"{where}.range.end"),
            _to_amount(spec["base"], f"{where}.range.base"),
            _to_amount(spec["step"], f"{where}.range.step"),
            str(spec["more_label"]),
            _to_amount(spec["more_value"], f"{where}.range.more_value"),
        )

    return MappingProxyType(
        {str(label): _to_amount(value, f"{where}[{label!r}]") for label, value in raw.items()}
    )


def _normalise_schedule(data: Mapping[str, Any]) -> FeeSchedule:
    schedule: Dict[TariffCode, Mapping[str, Any]] = {}
    for tariff in TariffCode:
        record = data.get(tariff.value)
        if record is None:
            raise MissingFeeTable(tariff.value)
        if not isinstance(record, Mapping):
            raise ValueError(f"{tariff.value} must be a mapping of fee tables")
        if "crop_base" not in record:
            raise MissingFeeTable(f"{tariff.value}.crop_base")

        tables: Dict[str, Any] = {
            "crop_base": _to_amount(record["crop_base"], f"{tariff.value}.crop_base"),
        }
        for name in TABLE_NAMES:
            if name not in record:
                raise MissingFeeTable(f"{tariff.value}.{name}")
            tables[name] = _normalise_table(f"{tariff.value}.{name}", record[name])
        schedule[tariff] = MappingProxyType(tables)
    return MappingProxyType(schedule)


@lru_cache(maxsize=None)
def _load_schedule(path_str: str, check: bool) -> FeeSchedule:
    path = Path(path_str)
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, Mapping):
        raise ValueError("fee schedule must be a mapping of tariff code to tables")

    schedule = _normalise_schedule(data)
    if check:
        check_vocabulary(schedule)
    logger.info("Loaded fee schedule from %s", path)
    return schedule


def load_fee_schedule(
    path: str | os.PathLike[str],
    *,
    check_options: bool = True,
) -> FeeSchedule:
    """Load and validate a JSON fee schedule. Results are cached per path."""
    return _load_schedule(str(Path(path)), check_options)


def get_fee_schedule(path: str | os.PathLike[str] | None = None) -> FeeSchedule:
    """Return the configured fee schedule, or the built-in ``FEES`` when none is set."""
    resolved = _resolve_schedule_path(path)
    if resolved is None:
        return FEES
    return load_fee_schedule(resolved)


def schedule_source(path: str | os.PathLike[str] | None = None) -> str:
    resolved = _resolve_schedule_path(path)
    return str(resolved) if resolved is not None else "builtin"
