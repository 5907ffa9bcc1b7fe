from __future__ import annotations

import pytest

from settrack.core.errors import InputParseError
from settrack.core.inputs import (
    clamp_reps,
    clamp_weight,
    coerce_reps,
    coerce_weight,
    parse_reps,
    parse_weight,
)


def test_parse_weight_accepts_decimal_comma() -> None:
    assert parse_weight("52.5") == 52.5
    assert parse_weight(" 52,5 ") == 52.5
    assert parse_weight(40) == 40.0


@pytest.mark.parametrize("raw", ["", "abc", "-5", "nan", "inf", None])
def test_parse_weight_rejects_garbage(raw: object) -> None:
    with pytest.raises(InputParseError):
        parse_weight(raw)


def test_parse_reps() -> None:
    assert parse_reps("12") == 12
    with pytest.raises(InputParseError):
        parse_reps("12.5")
    with pytest.raises(InputParseError):
        parse_reps("-1")
    with pytest.raises(InputParseError):
        parse_reps("0")


def test_coerce_keeps_fallback_on_invalid_text() -> None:
    assert coerce_weight("heavy", 50.0) == 50.0
    assert coerce_weight("55", 50.0) == 55.0
    assert coerce_reps("", 10) == 10
    assert coerce_reps("8", 10) == 8


def test_clamps() -> None:
    assert clamp_weight(-2.5) == 0.0
    assert clamp_weight(1200.0) == 999.0
    assert clamp_reps(0) == 1
    assert clamp_reps(1500) == 999
