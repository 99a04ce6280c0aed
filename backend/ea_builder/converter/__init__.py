"""
PURPOSE: Indicator-to-Expert-Advisor converter.

Provides parameter detection for MQL4 indicator source and generation of a
companion Expert Advisor that trades on the indicator's buffers.
"""

from .code_generator import ExpertAdvisorGenerator, compose, generated_filename
from .exceptions import ConversionError, UnknownLogicKindError
from .input_parser import carried_mql_type, extract_parameters, infer_mql_type

__all__ = [
    "ExpertAdvisorGenerator",
    "compose",
    "generated_filename",
    "extract_parameters",
    "infer_mql_type",
    "carried_mql_type",
    "ConversionError",
    "UnknownLogicKindError",
]
