"""
Fixed-point encoding of a surveyed LLH position for u-blox TMODE3.

The receiver takes each coordinate as a 32-bit coarse field plus an 8-bit
high-precision residual:

  latitude/longitude : major in 1e-7 deg, residual in 1e-9 deg
  height             : major in cm,       residual in 0.1 mm

so that major * 100 + residual is the full-precision value in the fine unit.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN, localcontext
from typing import List, NamedTuple, Tuple

from f9p_timing.errors import InvalidInputError

DEGREE_SCALE = Decimal("1e9")   # deg -> nano-degrees
HEIGHT_SCALE = Decimal("1e4")   # m -> 0.1 mm

PRECISION = 50

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

LAT_LIMIT = Decimal(90)
LON_LIMIT = Decimal(180)
# metres; the coarse height field is a 32-bit count of cm
HEIGHT_LIMIT = Decimal(INT32_MAX + 1) / 100


class EncodedValue(NamedTuple):
    major: int
    residual: int

    @property
    def total(self) -> int:
        return self.major * 100 + self.residual


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 49.1234567895 as typed instead of its binary expansion
    return Decimal(str(value))


def encode(value, scale) -> EncodedValue:
    """Split value * scale into (major, residual) with major*100 + residual exact.

    Rounding is half-to-even. The residual carries the sign of the total and
    stays within [-99, 99].
    """
    with localcontext() as ctx:
        ctx.prec = PRECISION
        scaled = _to_decimal(value) * _to_decimal(scale)
        total = int(scaled.to_integral_value(rounding=ROUND_HALF_EVEN))

    major = total // 100 if total >= 0 else -((-total) // 100)
    residual = total - major * 100
    if residual >= 100:
        major += 1
        residual -= 100
    if residual <= -100:
        major -= 1
        residual += 100
    return EncodedValue(major, residual)


def parse_quantity(name: str, text) -> Decimal:
    """Parse a user supplied decimal string for the named quantity."""
    if isinstance(text, Decimal):
        value = text
    else:
        try:
            value = Decimal(str(text).strip()) if text is not None else None
        except InvalidOperation:
            value = None
        if value is None:
            raise InvalidInputError(name, "non-numeric", repr(text))
    if not value.is_finite():
        raise InvalidInputError(name, "non-finite", repr(text))
    return value


def _check_major(name: str, encoded: EncodedValue) -> None:
    if not INT32_MIN <= encoded.major <= INT32_MAX:
        raise InvalidInputError(
            name, "out-of-range", f"coarse field {encoded.major} exceeds 32 bits"
        )


@dataclass(frozen=True)
class FixedPosition:
    lat_major: int
    lat_residual: int
    lon_major: int
    lon_residual: int
    height_major: int
    height_residual: int

    def as_config_items(self) -> List[Tuple[str, int]]:
        return [
            ("CFG-TMODE-LAT", self.lat_major),
            ("CFG-TMODE-LON", self.lon_major),
            ("CFG-TMODE-HEIGHT", self.height_major),
            ("CFG-TMODE-LAT_HP", self.lat_residual),
            ("CFG-TMODE-LON_HP", self.lon_residual),
            ("CFG-TMODE-HEIGHT_HP", self.height_residual),
        ]

    def as_env_lines(self) -> List[str]:
        return [
            f"LAT={self.lat_major}",
            f"LON={self.lon_major}",
            f"HEIGHT={self.height_major}",
            f"LAT_HP={self.lat_residual}",
            f"LON_HP={self.lon_residual}",
            f"HEIGHT_HP={self.height_residual}",
        ]


def encode_position(lat, lon, height) -> FixedPosition:
    """
    Validate and encode a latitude/longitude (deg) and ellipsoidal height (m).

    Raises InvalidInputError naming the offending quantity. Nothing is
    encoded unless all three inputs are valid.
    """
    lat_d = parse_quantity("latitude", lat)
    lon_d = parse_quantity("longitude", lon)
    h_m = parse_quantity("height", height)

    if abs(lat_d) > LAT_LIMIT:
        raise InvalidInputError("latitude", "out-of-range", f"{lat_d} outside +/-90 deg")
    if abs(lon_d) > LON_LIMIT:
        raise InvalidInputError("longitude", "out-of-range", f"{lon_d} outside +/-180 deg")
    if abs(h_m) > HEIGHT_LIMIT:
        raise InvalidInputError("height", "out-of-range", f"{h_m} m exceeds the 32-bit cm field")

    lat_e = encode(lat_d, DEGREE_SCALE)
    lon_e = encode(lon_d, DEGREE_SCALE)
    h_e = encode(h_m, HEIGHT_SCALE)
    for name, enc in (("latitude", lat_e), ("longitude", lon_e), ("height", h_e)):
        _check_major(name, enc)

    return FixedPosition(
        lat_major=lat_e.major,
        lat_residual=lat_e.residual,
        lon_major=lon_e.major,
        lon_residual=lon_e.residual,
        height_major=h_e.major,
        height_residual=h_e.residual,
    )
