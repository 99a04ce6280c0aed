"""
Pydantic v2 schemas for EA Builder.

This module exports all schema classes used by the converter, the API
and the command-line tool for validation and serialization.
"""

from .conversion import (
    ConversionPayload,
    CrossoverLogic,
    CustomLogic,
    GenerateResponse,
    IndicatorParameter,
    InputsRequest,
    InputsResponse,
    LogicConfig,
    ThresholdLogic,
)

__all__ = [
    # Indicator schemas
    "IndicatorParameter",
    # Logic schemas
    "CrossoverLogic",
    "ThresholdLogic",
    "CustomLogic",
    "LogicConfig",
    # Payload schemas
    "ConversionPayload",
    # API schemas
    "InputsRequest",
    "InputsResponse",
    "GenerateResponse",
]
