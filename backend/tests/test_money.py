import pytest

from poscore.money import apply_bps, apply_percent, div_half_up, format_cents, to_cents


def test_half_up_rounding():
    assert div_half_up(5, 2) == 3
    assert div_half_up(4, 3) == 1
    assert apply_bps(333, 1250) == 42
    assert apply_percent(9000, 12) == 1080


def test_to_cents():
    assert to_cents(30000) == 30000
    assert to_cents("300.00") == 30000
    assert to_cents("45.5") == 4550
    with pytest.raises(ValueError):
        to_cents("abc")
    with pytest.raises(ValueError):
        to_cents(True)


def test_format_cents():
    assert format_cents(25000) == "250.00"
    assert format_cents(5) == "0.05"
    assert format_cents(-150) == "-1.50"
