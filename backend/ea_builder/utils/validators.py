"""
PURPOSE: Input validation and normalization for raw form / command-line values.
Turns whatever the user typed into safe numbers before a ConversionPayload is
built, so the generator only ever sees sane risk settings.
"""

import math
from typing import Any, Dict, Optional

from ea_builder.config.settings import settings


def _as_float(value: Any) -> Optional[float]:
    """Parse value as a finite float, or return None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    """Parse value as an int (truncating finite floats), or return None."""
    number = _as_float(value)
    return int(number) if number is not None else None


def validate_lots(lots: Any) -> bool:
    """
    PURPOSE: Validate that lot size is a positive finite number.

    Args:
        lots: Lot size to validate.

    Returns:
        bool: True if lots parses to a finite number greater than zero.
    """
    number = _as_float(lots)
    return number is not None and number > 0


def validate_points(points: Any) -> bool:
    """
    PURPOSE: Validate a stop-loss / take-profit distance in points.

    Args:
        points: Distance to validate; 0 means disabled.

    Returns:
        bool: True if points parses to a finite number >= 0.
    """
    number = _as_float(points)
    return number is not None and number >= 0


def validate_indicator_name(name: Any) -> bool:
    """
    PURPOSE: Validate that an indicator name is a bare file name.

    Args:
        name: Indicator file name as typed by the user.

    Returns:
        bool: True if name is non-blank and has no path separators or extension.
    """
    if not isinstance(name, str) or not name.strip():
        return False
    if "/" in name or "\\" in name:
        return False
    return not name.lower().endswith((".mq4", ".ex4"))


def normalize_lots(lots: Any) -> float:
    """Return lots when valid, else the configured default lot size."""
    return float(lots) if validate_lots(lots) else settings.DEFAULT_LOTS


def normalize_points(points: Any) -> int:
    """Return points truncated to an int when valid, else 0 (disabled)."""
    return _as_int(points) if validate_points(points) else 0


def normalize_buffer_index(index: Any) -> int:
    """Return a non-negative buffer index; anything unusable becomes 0."""
    number = _as_int(index)
    return max(0, number) if number is not None else 0


def normalize_threshold(value: Any) -> Optional[float]:
    """Return the threshold as a finite float, or None when it is blank or unparseable."""
    if isinstance(value, str) and not value.strip():
        return None
    return _as_float(value)


def normalize_risk(
    lots: Any = None,
    slippage: Any = None,
    stop_loss: Any = None,
    take_profit: Any = None,
    magic_number: Any = None,
) -> Dict[str, Any]:
    """
    PURPOSE: Clamp raw risk values to safe defaults.

    Mirrors the checks the web form applies before generation:
        - lots that are not a positive finite number fall back to DEFAULT_LOTS
        - non-finite slippage / magic number fall back to their defaults
        - negative or non-finite stop-loss / take-profit become 0 (disabled)

    Args:
        lots: Raw lot size.
        slippage: Raw slippage in points.
        stop_loss: Raw stop-loss distance in points.
        take_profit: Raw take-profit distance in points.
        magic_number: Raw magic number.

    Returns:
        Dict[str, Any]: snake_case keys ready for ConversionPayload.
    """
    slippage_value = _as_int(slippage)
    magic_value = _as_int(magic_number)

    return {
        "lots": normalize_lots(lots),
        "slippage": slippage_value if slippage_value is not None else settings.DEFAULT_SLIPPAGE,
        "stop_loss": normalize_points(stop_loss),
        "take_profit": normalize_points(take_profit),
        "magic_number": magic_value if magic_value is not None else settings.DEFAULT_MAGIC_NUMBER,
    }
