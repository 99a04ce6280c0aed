"""
PURPOSE: Converter API routes for EA Builder.

Provides endpoints to detect the tunable parameters of an MQL4 indicator
and to generate a companion Expert Advisor from a conversion payload.

CALLED BY:
    - Frontend converter page (parameter preview and "Generate" button)
    - External integrations via API
"""

from typing import Any, Dict, NoReturn

from fastapi import APIRouter, HTTPException, Request

from ea_builder.config.settings import settings
from ea_builder.converter.code_generator import ExpertAdvisorGenerator, generated_filename
from ea_builder.converter.exceptions import ConversionError
from ea_builder.converter.input_parser import extract_parameters
from ea_builder.core.rate_limit import GENERATE_LIMIT, READ_LIMIT, limiter
from ea_builder.schemas.conversion import (
    ConversionPayload,
    GenerateResponse,
    InputsRequest,
    InputsResponse,
)
from ea_builder.utils.logger import get_logger

logger = get_logger("api.converter")

router = APIRouter(prefix="/converter", tags=["converter"])

_generator = ExpertAdvisorGenerator()


def _check_source_size(indicator_code: str) -> None:
    """Reject pasted sources larger than MAX_SOURCE_CHARS."""
    if len(indicator_code) > settings.MAX_SOURCE_CHARS:
        raise HTTPException(
            status_code=413,
            detail=(
                f"Indicator source is {len(indicator_code)} characters; "
                f"the limit is {settings.MAX_SOURCE_CHARS}."
            ),
        )


def _raise_route_error(action: str, error: Exception) -> NoReturn:
    """Raise a consistent 500 response for converter route failures."""
    logger.error(
        "converter_route_failed",
        action=action,
        error=str(error),
        exception_type=type(error).__name__,
    )
    raise HTTPException(status_code=500, detail=f"Failed to {action}")


# ════════════════════════════════════════════════════════════════
# POST /api/converter/inputs
# ════════════════════════════════════════════════════════════════


@router.post("/inputs")
@limiter.limit(READ_LIMIT)
async def detect_inputs(request: Request, body: InputsRequest) -> Dict[str, Any]:
    """
    PURPOSE: Detect the input/extern parameters declared in indicator source.

    Args:
        body.indicatorCode: Raw MQL4 indicator source

    Returns:
        dict: {parameters: [{name, defaultValue}, ...], count: int}
    """
    _check_source_size(body.indicator_code)

    try:
        parameters = extract_parameters(body.indicator_code)
        logger.info("indicator_inputs_detected", count=len(parameters))
        return InputsResponse(parameters=parameters, count=len(parameters)).model_dump(by_alias=True)
    except Exception as e:
        _raise_route_error("detect indicator inputs", e)


# ════════════════════════════════════════════════════════════════
# POST /api/converter/generate
# ════════════════════════════════════════════════════════════════


@router.post("/generate")
@limiter.limit(GENERATE_LIMIT)
async def generate_expert_advisor(request: Request, body: ConversionPayload) -> Dict[str, Any]:
    """
    PURPOSE: Generate an MQL4 Expert Advisor for the posted indicator.

    Detects the indicator's parameters once, carries them into the EA, and
    returns the complete source together with a suggested file name.

    Args:
        body: ConversionPayload (camelCase keys as sent by the form)

    Returns:
        dict: {code, filename, parameters}

    Raises:
        ConversionError: Handled by the app-level handler as a 422 with the
            failure placeholder in place of code.
    """
    _check_source_size(body.indicator_code)

    try:
        logger.info(
            "ea_generate_request",
            indicator=body.indicator_name,
            logic_kind=body.logic_config.kind,
        )

        parameters = extract_parameters(body.indicator_code)
        code = _generator.generate(body, parameters)

        return GenerateResponse(
            code=code,
            filename=generated_filename(body.indicator_name),
            parameters=parameters,
        ).model_dump(by_alias=True)

    except (HTTPException, ConversionError):
        raise
    except Exception as e:
        _raise_route_error("generate expert advisor", e)
