import json
from decimal import Decimal

import pytest

from telagri_pricing.rules.calculator import Selection, calculate
from telagri_pricing.rules.fee_tables import FEES, TABLE_NAMES, VocabularyMismatch
from telagri_pricing.rules.schedule_loader import (
    MissingFeeTable,
    get_fee_schedule,
    load_fee_schedule,
    schedule_source,
)
from telagri_pricing.settings import settings


def _builtin_as_json() -> dict:
    payload = {}
    for tariff, tables in FEES.items():
        record = {"crop_base": int(tables["crop_base"])}
        for name in TABLE_NAMES:
            record[name] = {label: int(value) for label, value in tables[name].items()}
        payload[tariff.value] = record
    return payload


def _write(tmp_path, payload, name="schedule.json"):
    path = tmp_path / name
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def test_loaded_schedule_quotes_like_builtin(tmp_path):
    path = _write(tmp_path, _builtin_as_json())
    schedule = load_fee_schedule(path)

    selection = Selection(
        crop="Grapes",
        area="0–5 ha",
        reservoirs="0–1",
        outermost_distance="Less than 100 m.",
        plant_ages="1",
        varieties="1",
        road_distance="Up to 1 km",
    )
    assert calculate(selection, schedule) == calculate(selection)
    assert calculate(selection, schedule).total == Decimal("1750")


def test_range_spec_is_expanded(tmp_path):
    payload = _builtin_as_json()
    payload["T2"]["variety_count_fee"] = {
        "range": {
            "start": 1,
            "end": 9,
            "base": 150,
            "step": 50,
            "more_label": "More than 10",
            "more_value": 900,
        }
    }
    schedule = load_fee_schedule(_write(tmp_path, payload))

    table = schedule["T2"]["variety_count_fee"]
    assert table["1"] == Decimal("150")
    assert table["9"] == Decimal("550")
    assert table["More than 10"] == Decimal("900")


def test_missing_table_raises(tmp_path):
    payload = _builtin_as_json()
    del payload["T1"]["road_distance_fee"]

    with pytest.raises(MissingFeeTable) as excinfo:
        load_fee_schedule(_write(tmp_path, payload))
    assert excinfo.value.field_path == "T1.road_distance_fee"
    assert str(excinfo.value) == "missing required fee table: T1.road_distance_fee"


def test_missing_tariff_raises(tmp_path):
    payload = _builtin_as_json()
    del payload["T2"]

    with pytest.raises(MissingFeeTable):
        load_fee_schedule(_write(tmp_path, payload))


def test_negative_fee_rejected(tmp_path):
    payload = _builtin_as_json()
    payload["T1"]["area_fee"]["0–5 ha"] = -10

    with pytest.raises(ValueError):
        load_fee_schedule(_write(tmp_path, payload))


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_fee_rejected(tmp_path, amount):
    payload = _builtin_as_json()
    payload["T1"]["area_fee"]["0–5 ha"] = amount

    with pytest.raises(ValueError, match="not a finite fee"):
        load_fee_schedule(_write(tmp_path, payload))


def test_non_finite_crop_base_rejected(tmp_path):
    payload = _builtin_as_json()
    payload["T2"]["crop_base"] = float("inf")

    with pytest.raises(ValueError, match="T2.crop_base"):
        load_fee_schedule(_write(tmp_path, payload))


def _range_table(**overrides):
    spec = {
        "start": 1,
        "end": 9,
        "base": 100,
        "step": 100,
        "more_label": "More than 10",
        "more_value": 1000,
    }
    spec.update(overrides)
    return {"range": spec}


def test_labels_next_to_range_rejected(tmp_path):
    payload = _builtin_as_json()
    table = _range_table()
    table["10"] = 1100
    payload["T2"]["plant_age_groups_fee"] = table

    with pytest.raises(ValueError, match="labels next to a range"):
        load_fee_schedule(_write(tmp_path, payload))


@pytest.mark.parametrize("bound", [{"start": 1.9}, {"end": 9.5}, {"start": "1"}, {"end": True}])
def test_non_integer_range_bounds_rejected(tmp_path, bound):
    payload = _builtin_as_json()
    payload["T2"]["plant_age_groups_fee"] = _range_table(**bound)

    with pytest.raises(ValueError, match="not an integer"):
        load_fee_schedule(_write(tmp_path, payload))


def test_integral_float_range_bounds_accepted(tmp_path):
    payload = _builtin_as_json()
    payload["T2"]["plant_age_groups_fee"] = _range_table(start=1.0, end=9.0)
    schedule = load_fee_schedule(_write(tmp_path, payload))

    assert schedule["T2"]["plant_age_groups_fee"]["1"] == Decimal("100")
    assert schedule["T2"]["plant_age_groups_fee"]["9"] == Decimal("900")


def test_option_without_fee_fails_at_load(tmp_path):
    payload = _builtin_as_json()
    del payload["T1"]["reservoirs_fee"]["6 or more"]
    path = _write(tmp_path, payload)

    with pytest.raises(VocabularyMismatch):
        load_fee_schedule(path)

    schedule = load_fee_schedule(path, check_options=False)
    assert "6 or more" not in schedule["T1"]["reservoirs_fee"]


def test_get_fee_schedule_defaults_to_builtin(monkeypatch):
    monkeypatch.setattr(settings, "schedule_path", None)

    assert get_fee_schedule() is FEES
    assert schedule_source() == "builtin"


def test_get_fee_schedule_follows_settings(tmp_path, monkeypatch):
    payload = _builtin_as_json()
    payload["T1"]["crop_base"] = 650
    path = _write(tmp_path, payload, name="configured.json")
    monkeypatch.setattr(settings, "schedule_path", str(path))

    schedule = get_fee_schedule()

    assert schedule["T1"]["crop_base"] == Decimal("650")
    assert schedule_source() == str(path)
    assert get_fee_schedule() is schedule
