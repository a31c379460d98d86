"""Crop → tariff classification.

Qualified crop variants (e.g. ``"Apple (super-intensive, with support system)"``)
map directly to a tariff. Bare crop names fall back to a default tariff; the
crops that exist in both an intensive and a super-intensive form are priced
under T2 unless the qualifier says otherwise.
"""
from __future__ import annotations

from enum import Enum
from typing import FrozenSet, List, Optional


class TariffCode(str, Enum):
    T1 = "T1"
    T2 = "T2"


T1_CROPS: FrozenSet[str] = frozenset({
    "Blueberry",
    "Blackberry",
    "Raspberry",
    "Apple (super-intensive, with support system)",
    "Pear (super-intensive, with support system)",
    "Peach (super-intensive, with support system)",
    "Cherry (super-intensive, with support system)",
    "Plum (super-intensive, with support system)",
    "Nectarine (super-intensive, with support system)",
    "Almond (super-intensive)",
    "Grapes",
})

T2_CROPS: FrozenSet[str] = frozenset({
    "Almond (semi-intensive and intensive)",
    "Hazelnut",
    "Walnut",
    "Apple (semi-intensive and intensive)",
    "Pear (semi-intensive and intensive)",
    "Peach (semi-intensive and intensive)",
    "Cherry (semi-intensive and intensive)",
    "Plum (semi-intensive and intensive)",
    "Nectarine (semi-intensive and intensive)",
    "Pomegranate",
    "Apricot",
})

# Base crop names offered in the crop picker (no intensity qualifier).
ALLOWED_CROPS: List[str] = [
    "Walnut", "Hazelnut", "Almond", "Blueberry", "Apple", "Cherry", "Pear", "Peach",
    "Nectarine", "Plum", "Grapes", "Pomegranate", "Apricot", "Raspberry", "Blackberry",
]

_BASE_T1 = {"blueberry", "blackberry", "raspberry", "grapes"}
_BASE_T2 = {"walnut", "hazelnut", "pomegranate", "apricot"}
# Sold both intensive and super-intensive; without a qualifier they price as T2.
_BASE_AMBIGUOUS = {"apple", "pear", "peach", "cherry", "plum", "nectarine", "almond"}


def resolve_tariff(crop: Optional[str]) -> TariffCode:
    """Return the tariff for ``crop``. Unknown or empty names resolve to T2."""
    crop = crop or ""
    if crop in T1_CROPS:
        return TariffCode.T1
    if crop in T2_CROPS:
        return TariffCode.T2

    base = crop.strip().lower()
    if base in _BASE_T1:
        return TariffCode.T1
    if base in _BASE_T2 or base in _BASE_AMBIGUOUS:
        return TariffCode.T2
    return TariffCode.T2
