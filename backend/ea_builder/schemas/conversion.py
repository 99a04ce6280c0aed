"""
Conversion-related Pydantic schemas for EA Builder.

Handles validation and serialization of detected indicator parameters,
the three trading-logic variants, and the full conversion payload.
All models accept camelCase keys (as sent by the web form) as well as
their snake_case field names.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ea_builder.config.constants import ThresholdDirection


class _FrozenModel(BaseModel):
    """Immutable base: camelCase aliases, unknown fields rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
        allow_inf_nan=False,
    )


class IndicatorParameter(_FrozenModel):
    """
    One tunable value declared in the indicator source.

    Attributes:
        name: Identifier token of the declaration
        default_value: Initializer text exactly as written (trimmed)
        mql_type: Declared type token; kept for re-declaring the input in the
            EA and never serialized
    """

    name: str = Field(..., min_length=1)
    default_value: str
    mql_type: Optional[str] = Field(default=None, exclude=True)


class CrossoverLogic(_FrozenModel):
    """
    Trade when the fast buffer crosses the slow buffer.

    Attributes:
        kind: Discriminator, always "crossover"
        fast_buffer: Buffer index of the fast line
        slow_buffer: Buffer index of the slow line
        allow_multiple_positions: Open on every signal even if a position in
            that direction already exists
        reverse_signal: Sell on bullish crosses and buy on bearish ones
    """

    kind: Literal["crossover"] = "crossover"
    fast_buffer: int = Field(default=0, ge=0)
    slow_buffer: int = Field(default=1, ge=0)
    allow_multiple_positions: bool = False
    reverse_signal: bool = False


class ThresholdLogic(_FrozenModel):
    """
    Trade when a buffer breaches fixed levels.

    Attributes:
        kind: Discriminator, always "threshold"
        buffer: Buffer index to read
        upper: Level whose breach from below is the buy signal; None disables it
        lower: Level whose breach from above is the sell signal; None disables it
        direction: Which breaches are evaluated (above, below or band)
        allow_multiple_positions: Open on every signal even if a position in
            that direction already exists
    """

    kind: Literal["threshold"] = "threshold"
    buffer: int = Field(default=0, ge=0)
    upper: Optional[float] = None
    lower: Optional[float] = None
    direction: ThresholdDirection = ThresholdDirection.BAND
    allow_multiple_positions: bool = False


class CustomLogic(_FrozenModel):
    """
    User-supplied MQL4 embedded verbatim as the OnTick body.

    Attributes:
        kind: Discriminator, always "custom"
        snippet: Raw MQL4 statements
    """

    kind: Literal["custom"] = "custom"
    snippet: str


LogicConfig = Annotated[
    Union[CrossoverLogic, ThresholdLogic, CustomLogic],
    Field(discriminator="kind"),
]


class ConversionPayload(_FrozenModel):
    """
    Complete input for one EA generation.

    Attributes:
        indicator_name: Indicator filename without extension, used by iCustom
        indicator_code: Raw indicator source the parameters are detected from
        timeframe_expression: MQL4 expression passed verbatim as the timeframe
        lots: Order volume
        slippage: Maximum slippage in points
        stop_loss: Stop-loss distance in points, 0 disables it
        take_profit: Take-profit distance in points, 0 disables it
        magic_number: Tag attached to every order the EA opens
        logic_config: Selected trading-logic variant
    """

    indicator_name: str = Field(..., min_length=1)
    indicator_code: str = ""
    timeframe_expression: str = Field(default="_Period", min_length=1)
    lots: float = Field(default=0.10, gt=0)
    slippage: int = 3
    stop_loss: int = Field(default=0, ge=0)
    take_profit: int = Field(default=0, ge=0)
    magic_number: int = 123456
    logic_config: LogicConfig

    @field_validator("indicator_name", "timeframe_expression")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject values made only of whitespace."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("indicator_name")
    @classmethod
    def validate_printable(cls, v: str) -> str:
        """Reject line breaks and other control characters; the name becomes an MQL4 string literal."""
        if not v.isprintable():
            raise ValueError("must not contain line breaks or control characters")
        return v


class InputsRequest(BaseModel):
    """Body of the parameter-detection endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    indicator_code: str


class InputsResponse(BaseModel):
    """Detected parameters in source order."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    parameters: List[IndicatorParameter]
    count: int


class GenerateResponse(BaseModel):
    """
    Generated Expert Advisor.

    Attributes:
        code: Complete MQL4 source of the EA
        filename: Suggested file name for saving the code
        parameters: Indicator parameters carried into the EA
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    filename: str
    parameters: List[IndicatorParameter]
