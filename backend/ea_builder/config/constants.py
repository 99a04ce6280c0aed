"""
PURPOSE: Enumerations and fixed values shared by the converter, API and CLI.
"""

from enum import Enum


class LogicKind(str, Enum):
    """Trading-logic strategy selected for the generated EA's OnTick body."""

    CROSSOVER = "crossover"
    THRESHOLD = "threshold"
    CUSTOM = "custom"


class ThresholdDirection(str, Enum):
    """Which threshold breaches produce a signal."""

    ABOVE = "above"
    BELOW = "below"
    BAND = "band"


class OrderDirection(int, Enum):
    """Direction argument understood by the generated HasOpenPosition/ClosePositions helpers."""

    BUY = 1
    SELL = -1


# Qualifiers that mark a user-tunable declaration in MQL4 source
INPUT_QUALIFIERS = ("input", "extern")

GENERATED_FILE_SUFFIX = "_EA"
GENERATED_FILE_EXTENSION = ".mq4"

# Shown by callers in place of generated code when composition fails
CONVERSION_FAILED_PLACEHOLDER = "// Conversion failed. Check the console for details."

# Identifiers declared at global scope of every generated EA; a carried
# indicator input with one of these names would redeclare it
RESERVED_EA_IDENTIFIERS = frozenset({
    "Lots",
    "Slippage",
    "StopLossPoints",
    "TakeProfitPoints",
    "MagicNumber",
    "CloseOppositeSignal",
    "IndicatorName",
    "UpperThreshold",
    "LowerThreshold",
    "GetIndicatorValue",
    "HasOpenPosition",
    "OpenOrder",
    "ClosePositions",
    "OnInit",
    "OnDeinit",
    "OnTick",
})

# MQL4 types an EA can declare without the indicator's own enum definitions
CARRIABLE_MQL_TYPES = frozenset({
    "bool", "char", "uchar", "short", "ushort", "int", "uint", "long", "ulong",
    "float", "double", "string", "color", "datetime",
})
