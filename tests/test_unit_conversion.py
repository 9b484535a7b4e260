import pytest

from pantryreco.domain.models.units import NormalizedQuantity, UnitFamily
from pantryreco.domain.services.unit_conversion_svc import (
    UNIT_TABLE,
    is_sufficient,
    normalize,
    parse_quantity,
)


def test_mass_units_normalize_to_grams():
    q = normalize(1.5, "kg")
    assert q.family == UnitFamily.MASS
    assert q.value == pytest.approx(1500)
    assert normalize(1, "lb").value == pytest.approx(453.592, rel=1e-5)
    assert normalize(250, "mg").value == pytest.approx(0.25)


def test_volume_units_normalize_to_milliliters():
    assert normalize(1, "l") == normalize(1000, "ml")
    assert normalize(1, "cup").value == pytest.approx(236.588, rel=1e-5)
    assert normalize(2, "cl").value == pytest.approx(20)


def test_unit_codes_are_case_insensitive_and_aliased():
    assert normalize(1, "Tbs") == normalize(1, "tbs") == normalize(1, "TBSP")
    assert normalize(1, "floz").family == UnitFamily.VOLUME
    assert normalize(4, "pcs") == NormalizedQuantity(value=4, family=UnitFamily.COUNT)


def test_unknown_unit_keeps_value_under_unknown_family():
    q = normalize(3, "handful")
    assert q.family == UnitFamily.UNKNOWN
    assert q.value == 3


def test_missing_unit_is_a_count():
    assert normalize(6, None).family == UnitFamily.COUNT
    assert normalize(6, "  ").family == UnitFamily.COUNT


def test_normalize_never_raises_on_odd_input():
    assert normalize(None, "g").value == 0.0


CANONICAL = {UnitFamily.MASS: "g", UnitFamily.VOLUME: "ml", UnitFamily.COUNT: "piece"}


@pytest.mark.parametrize("code", sorted(UNIT_TABLE))
def test_family_is_stable_and_renormalizing_is_idempotent(code):
    first = normalize(3.5, code)
    assert normalize(7, code).family == first.family
    again = normalize(first.value, CANONICAL[first.family])
    assert again == first


def test_is_sufficient_requires_same_known_family():
    need = normalize(200, "g")
    assert is_sufficient(normalize(0.5, "kg"), need)
    assert is_sufficient(normalize(200, "g"), need)
    assert not is_sufficient(normalize(150, "g"), need)
    assert not is_sufficient(normalize(500, "ml"), need)
    assert not is_sufficient(None, need)


def test_unknown_family_never_satisfies_even_itself():
    q = normalize(10, "handful")
    assert not is_sufficient(q, normalize(1, "handful"))


@pytest.mark.parametrize(
    "text, expected",
    [
        ("500g", (500.0, "g")),
        ("1,5 l", (1.5, "l")),
        ("2 tbsp", (2.0, "Tbs")),
        ("2 Tbs", (2.0, "Tbs")),
        ("12 fl-oz", (12.0, "fl-oz")),
        ("250 ml of milk", (250.0, "ml")),
        ("3 handfuls", (3.0, None)),
        ("4", (4.0, None)),
        ("abc", (None, None)),
        ("", (None, None)),
        (None, (None, None)),
    ],
)
def test_parse_quantity(text, expected):
    assert parse_quantity(text) == expected
