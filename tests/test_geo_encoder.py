from decimal import Decimal, ROUND_HALF_EVEN

import pytest

from f9p_timing.errors import InvalidInputError
from f9p_timing.geo_encoder import (
    DEGREE_SCALE,
    HEIGHT_SCALE,
    FixedPosition,
    encode,
    encode_position,
    parse_quantity,
)


@pytest.mark.parametrize("value, scale, expected", [
    (Decimal("49"), DEGREE_SCALE, (490000000, 0)),
    (Decimal("8"), DEGREE_SCALE, (80000000, 0)),
    (Decimal("49.1234567895"), DEGREE_SCALE, (491234567, 90)),
    (Decimal("1"), HEIGHT_SCALE, (100, 0)),
    (Decimal("1.23456"), HEIGHT_SCALE, (123, 46)),
    (Decimal("-1.23456"), HEIGHT_SCALE, (-123, -46)),
    (Decimal("0"), DEGREE_SCALE, (0, 0)),
])
def test_encode_known_values(value, scale, expected):
    assert encode(value, scale) == expected


def test_encode_accepts_floats_as_typed():
    assert encode(49.1234567895, 1e9) == (491234567, 90)
    assert encode(1.23456, 1e4) == (123, 46)


@pytest.mark.parametrize("value, expected_total", [
    ("0.5", 0),
    ("1.5", 2),
    ("2.5", 2),
    ("-2.5", -2),
    ("150.5", 150),
    ("151.5", 152),
])
def test_ties_round_to_even(value, expected_total):
    enc = encode(Decimal(value), Decimal(1))
    assert enc.total == expected_total


def test_negative_input_is_exact_negation():
    pos = encode(Decimal("49.000000001"), DEGREE_SCALE)
    neg = encode(Decimal("-49.000000001"), DEGREE_SCALE)
    assert pos == (490000000, 1)
    assert neg == (-pos.major, -pos.residual)


def test_small_negative_keeps_sign_in_residual():
    enc = encode(Decimal("-0.00000005"), DEGREE_SCALE)
    assert enc == (0, -50)


@pytest.mark.parametrize("text", [
    "49.1234567891", "-33.8688197", "179.999999999", "-179.9999999995",
    "0.00000000049", "-0.0000000015", "8471.2345", "-417.5", "0.00005",
])
def test_reconstruction_and_residual_bound(text):
    value = Decimal(text)
    for scale in (DEGREE_SCALE, HEIGHT_SCALE):
        enc = encode(value, scale)
        expected = int((value * scale).to_integral_value(rounding=ROUND_HALF_EVEN))
        assert enc.major * 100 + enc.residual == expected
        assert -99 <= enc.residual <= 99
        if enc.residual:
            assert (enc.residual > 0) == (expected > 0)


@pytest.mark.parametrize("text, reason", [
    ("abc", "non-numeric"),
    ("", "non-numeric"),
    (None, "non-numeric"),
    ("1,5", "non-numeric"),
    ("nan", "non-finite"),
    ("Infinity", "non-finite"),
    ("-inf", "non-finite"),
])
def test_parse_quantity_rejects(text, reason):
    with pytest.raises(InvalidInputError) as exc:
        parse_quantity("height", text)
    assert exc.value.quantity == "height"
    assert exc.value.reason == reason


def test_parse_quantity_strips_whitespace():
    assert parse_quantity("latitude", " 49.5 ") == Decimal("49.5")


def test_encode_position_default_site():
    pos = encode_position("49", "8", "1")
    assert pos == FixedPosition(490000000, 0, 80000000, 0, 100, 0)
    assert pos.as_env_lines() == [
        "LAT=490000000", "LON=80000000", "HEIGHT=100",
        "LAT_HP=0", "LON_HP=0", "HEIGHT_HP=0",
    ]


def test_encode_position_config_items_order():
    pos = encode_position("41.84305547", "-88.10367403", "202.579")
    items = pos.as_config_items()
    assert [k for k, _ in items] == [
        "CFG-TMODE-LAT", "CFG-TMODE-LON", "CFG-TMODE-HEIGHT",
        "CFG-TMODE-LAT_HP", "CFG-TMODE-LON_HP", "CFG-TMODE-HEIGHT_HP",
    ]
    assert dict(items)["CFG-TMODE-LAT"] == 418430554
    assert dict(items)["CFG-TMODE-LAT_HP"] == 70
    assert dict(items)["CFG-TMODE-LON"] == -881036740
    assert dict(items)["CFG-TMODE-LON_HP"] == -30
    assert dict(items)["CFG-TMODE-HEIGHT"] == 20257
    assert dict(items)["CFG-TMODE-HEIGHT_HP"] == 90


def test_encode_position_accepts_limits():
    pos = encode_position("-90", "180", "-100")
    assert pos.lat_major == -900000000
    assert pos.lon_major == 1800000000


@pytest.mark.parametrize("lat, lon, height, quantity", [
    ("90.0000001", "0", "0", "latitude"),
    ("0", "-180.5", "0", "longitude"),
    ("0", "0", "1e30", "height"),
])
def test_encode_position_out_of_range(lat, lon, height, quantity):
    with pytest.raises(InvalidInputError) as exc:
        encode_position(lat, lon, height)
    assert exc.value.quantity == quantity
    assert exc.value.reason == "out-of-range"


def test_encode_position_reports_first_bad_quantity():
    with pytest.raises(InvalidInputError) as exc:
        encode_position("north", "east", "1")
    assert exc.value.quantity == "latitude"
    assert "non-numeric" in str(exc.value)


@pytest.mark.parametrize("height", ["9e999999", "-9e999999", "21474836.49"])
def test_encode_position_huge_height_is_out_of_range(height):
    with pytest.raises(InvalidInputError) as exc:
        encode_position("49", "8", height)
    assert exc.value.quantity == "height"
    assert exc.value.reason == "out-of-range"


def test_encode_position_height_at_field_limit():
    pos = encode_position("49", "8", "21474836.47")
    assert pos.height_major == 2147483647
    assert pos.height_residual == 0
