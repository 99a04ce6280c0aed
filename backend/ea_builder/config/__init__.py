"""
PURPOSE: Export configuration settings and constants for EA Builder.

This module centralizes access to all configuration settings and constants
used by the converter, the HTTP API and the command-line tool.
"""

from .constants import (
    CONVERSION_FAILED_PLACEHOLDER,
    GENERATED_FILE_EXTENSION,
    GENERATED_FILE_SUFFIX,
    INPUT_QUALIFIERS,
    RESERVED_EA_IDENTIFIERS,
    LogicKind,
    OrderDirection,
    ThresholdDirection,
)
from .settings import settings

__all__ = [
    "settings",
    "LogicKind",
    "ThresholdDirection",
    "OrderDirection",
    "INPUT_QUALIFIERS",
    "RESERVED_EA_IDENTIFIERS",
    "GENERATED_FILE_SUFFIX",
    "GENERATED_FILE_EXTENSION",
    "CONVERSION_FAILED_PLACEHOLDER",
]
