"""
PURPOSE: Generates a complete MQL4 Expert Advisor from a conversion payload.

The generated file is assembled from fixed sections:
    - Header banner and #property lines
    - Risk inputs (lots, slippage, SL/TP points, magic number)
    - Indicator inputs carried over from the indicator source
    - GetIndicatorValue(): the single iCustom call site
    - Order helpers: HasOpenPosition / OpenOrder / ClosePositions
    - OnInit / OnDeinit
    - OnTick, whose body comes from the selected logic renderer

Output is deterministic: no timestamps or random values are emitted, so the
same payload always yields byte-identical text.

CALLED BY:
    - api/routes_converter.py (generate endpoint)
    - cli.py (generate command)
"""

from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from ea_builder.config.constants import (
    GENERATED_FILE_EXTENSION,
    GENERATED_FILE_SUFFIX,
    RESERVED_EA_IDENTIFIERS,
)
from ea_builder.converter.exceptions import ConversionError, UnknownLogicKindError
from ea_builder.converter.input_parser import carried_mql_type, extract_parameters
from ea_builder.converter.logic_renderers import (
    INDENT,
    LOGIC_RENDERERS,
    LogicFragment,
    format_double,
)
from ea_builder.schemas.conversion import (
    ConversionPayload,
    CrossoverLogic,
    CustomLogic,
    IndicatorParameter,
    ThresholdLogic,
)
from ea_builder.utils.logger import get_logger

logger = get_logger("converter.code_generator")

BANNER_WIDTH = 68

# Parameter names of GetIndicatorValue; suffixed so no indicator input can shadow them
BUFFER_ARG = "bufferIndex_"
SHIFT_ARG = "barShift_"

_LOGIC_CONFIG_TYPES = {
    "crossover": CrossoverLogic,
    "threshold": ThresholdLogic,
    "custom": CustomLogic,
}


def generated_filename(indicator_name: str) -> str:
    """File name suggested for the EA generated from ``indicator_name``."""
    return f"{indicator_name}{GENERATED_FILE_SUFFIX}{GENERATED_FILE_EXTENSION}"


def _mql_string(text: str) -> str:
    """Quote text as an MQL4 string literal."""
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


class ExpertAdvisorGenerator:
    """
    PURPOSE: Converts a ConversionPayload into MQL4 Expert Advisor source.

    Stateless: each call to generate() works only on its arguments.

    CALLED BY: api/routes_converter.py, cli.py
    """

    # ------------------------------------------------------------------ #
    #  Public API
    # ------------------------------------------------------------------ #

    def generate(
        self,
        payload: Union[ConversionPayload, Mapping[str, Any]],
        parameters: Optional[Sequence[IndicatorParameter]] = None,
    ) -> str:
        """
        Generate the full EA source.

        Args:
            payload: Validated payload, or a mapping to validate into one.
            parameters: Indicator parameters to carry into the EA. When None
                they are extracted from payload.indicator_code.

        Returns:
            Complete MQL4 source text ending with a newline.

        Raises:
            UnknownLogicKindError: logic_config.kind is not a known kind.
            ConversionError: The payload is otherwise malformed.
        """
        payload = self._coerce_payload(payload)

        logic = payload.logic_config
        kind = getattr(logic, "kind", None)
        renderer = LOGIC_RENDERERS.get(kind)
        if renderer is None:
            raise UnknownLogicKindError(kind)
        if not isinstance(logic, _LOGIC_CONFIG_TYPES[kind]):
            raise ConversionError(
                f"logic_config for kind {kind!r} must be a {_LOGIC_CONFIG_TYPES[kind].__name__}"
            )

        if parameters is None:
            parameters = extract_parameters(payload.indicator_code)
        parameters = list(parameters)
        self._check_reserved_names(parameters)

        fragment: LogicFragment = renderer(logic)

        sections = [
            self._header(payload),
            self._risk_inputs(payload),
            self._indicator_inputs(payload, parameters),
        ]
        if fragment.inputs:
            sections.append("\n".join(["// Strategy settings", *fragment.inputs]))
        sections.extend([
            self._indicator_accessor(payload, parameters),
            self._has_open_position(),
            self._open_order(),
            self._close_positions(),
            self._lifecycle(),
            self._on_tick(fragment),
        ])

        code = "\n\n".join(sections) + "\n"

        logger.info(
            "ea_generated",
            indicator=payload.indicator_name,
            logic_kind=kind,
            parameters=len(parameters),
            length=len(code),
        )
        return code

    # ------------------------------------------------------------------ #
    #  Private helpers: payload
    # ------------------------------------------------------------------ #

    def _check_reserved_names(self, parameters: List[IndicatorParameter]) -> None:
        """Reject carried inputs whose names the EA already declares."""
        clashes = [p.name for p in parameters if p.name in RESERVED_EA_IDENTIFIERS]
        if clashes:
            raise ConversionError(
                "Indicator inputs clash with identifiers the generated EA declares: "
                + ", ".join(clashes)
                + ". Rename them in the indicator before converting."
            )

    def _coerce_payload(
        self, payload: Union[ConversionPayload, Mapping[str, Any]]
    ) -> ConversionPayload:
        """Validate a mapping into a ConversionPayload, rejecting unknown kinds first."""
        if isinstance(payload, ConversionPayload):
            return payload
        if not isinstance(payload, Mapping):
            raise ConversionError(
                f"payload must be a ConversionPayload or mapping, got {type(payload).__name__}"
            )

        logic = payload.get("logicConfig", payload.get("logic_config"))
        if isinstance(logic, Mapping):
            kind = logic.get("kind")
            if not isinstance(kind, str) or kind not in LOGIC_RENDERERS:
                raise UnknownLogicKindError(kind)

        try:
            return ConversionPayload.model_validate(payload)
        except ValidationError as e:
            raise ConversionError(f"Invalid conversion payload: {e}") from e

    # ------------------------------------------------------------------ #
    #  Private helpers: declarations
    # ------------------------------------------------------------------ #

    def _header(self, payload: ConversionPayload) -> str:
        rule = "//+" + "-" * (BANNER_WIDTH - 4) + "+"

        def row(text: str) -> str:
            return ("//| " + text).ljust(BANNER_WIDTH - 1) + "|"

        lines = [
            rule,
            row(generated_filename(payload.indicator_name)),
            row("Expert Advisor generated by EA Builder"),
            row(f"Source indicator: {payload.indicator_name}"),
            rule,
            '#property copyright "Generated by EA Builder"',
            '#property version   "1.00"',
            "#property strict",
        ]
        return "\n".join(lines)

    def _risk_inputs(self, payload: ConversionPayload) -> str:
        lines = [
            "// Risk settings",
            f"input double Lots = {format_double(payload.lots)};",
            f"input int Slippage = {payload.slippage};",
            f"input int StopLossPoints = {payload.stop_loss};      // 0 disables the stop-loss",
            f"input int TakeProfitPoints = {payload.take_profit};    // 0 disables the take-profit",
            f"input int MagicNumber = {payload.magic_number};",
            "input bool CloseOppositeSignal = true;",
        ]
        return "\n".join(lines)

    def _indicator_inputs(
        self, payload: ConversionPayload, parameters: List[IndicatorParameter]
    ) -> str:
        lines = [
            "// Indicator settings",
            f"input string IndicatorName = {_mql_string(payload.indicator_name)};",
        ]
        if not parameters:
            lines.append("// No input/extern parameters were detected in the indicator")
        for param in parameters:
            lines.append(
                f"input {carried_mql_type(param)} {param.name} = {param.default_value};"
            )
        return "\n".join(lines)

    # ------------------------------------------------------------------ #
    #  Private helpers: functions
    # ------------------------------------------------------------------ #

    def _indicator_accessor(
        self, payload: ConversionPayload, parameters: List[IndicatorParameter]
    ) -> str:
        args = ["NULL", payload.timeframe_expression, "IndicatorName"]
        args.extend(param.name for param in parameters)
        args.extend([BUFFER_ARG, SHIFT_ARG])

        lines = [
            "// Reads one value of the indicator; every strategy goes through here",
            f"double GetIndicatorValue(int {BUFFER_ARG}, int {SHIFT_ARG})",
            "{",
            f"{INDENT}return iCustom({', '.join(args)});",
            "}",
        ]
        return "\n".join(lines)

    def _has_open_position(self) -> str:
        lines = [
            "// direction: 1 = buy, -1 = sell",
            "bool HasOpenPosition(int direction)",
            "{",
            "   for(int i = OrdersTotal() - 1; i >= 0; i--)",
            "   {",
            "      if(!OrderSelect(i, SELECT_BY_POS, MODE_TRADES)) continue;",
            "      if(OrderSymbol() != Symbol() || OrderMagicNumber() != MagicNumber) continue;",
            "      if(direction > 0 && OrderType() == OP_BUY) return(true);",
            "      if(direction < 0 && OrderType() == OP_SELL) return(true);",
            "   }",
            "   return(false);",
            "}",
        ]
        return "\n".join(lines)

    def _open_order(self) -> str:
        lines = [
            "int OpenOrder(int orderType)",
            "{",
            "   RefreshRates();",
            "   double price = (orderType == OP_BUY) ? Ask : Bid;",
            "   double sl = 0.0;",
            "   double tp = 0.0;",
            "",
            "   if(StopLossPoints > 0)",
            "      sl = (orderType == OP_BUY) ? price - StopLossPoints * Point : price + StopLossPoints * Point;",
            "   if(TakeProfitPoints > 0)",
            "      tp = (orderType == OP_BUY) ? price + TakeProfitPoints * Point : price - TakeProfitPoints * Point;",
            "",
            "   int ticket = OrderSend(Symbol(), orderType, Lots, NormalizeDouble(price, Digits), Slippage,",
            "                          NormalizeDouble(sl, Digits), NormalizeDouble(tp, Digits),",
            '                          IndicatorName + " EA", MagicNumber, 0, clrNONE);',
            "   if(ticket < 0)",
            '      Print("OrderSend failed: ", GetLastError());',
            "   return(ticket);",
            "}",
        ]
        return "\n".join(lines)

    def _close_positions(self) -> str:
        lines = [
            "// direction: 1 = buy, -1 = sell",
            "void ClosePositions(int direction)",
            "{",
            "   for(int i = OrdersTotal() - 1; i >= 0; i--)",
            "   {",
            "      if(!OrderSelect(i, SELECT_BY_POS, MODE_TRADES)) continue;",
            "      if(OrderSymbol() != Symbol() || OrderMagicNumber() != MagicNumber) continue;",
            "      if(direction > 0 && OrderType() != OP_BUY) continue;",
            "      if(direction < 0 && OrderType() != OP_SELL) continue;",
            "",
            "      RefreshRates();",
            "      double price = (OrderType() == OP_BUY) ? Bid : Ask;",
            "      if(!OrderClose(OrderTicket(), OrderLots(), NormalizeDouble(price, Digits), Slippage, clrNONE))",
            '         Print("OrderClose failed: ", GetLastError());',
            "   }",
            "}",
        ]
        return "\n".join(lines)

    def _lifecycle(self) -> str:
        lines = [
            "int OnInit()",
            "{",
            "   return(INIT_SUCCEEDED);",
            "}",
            "",
            "void OnDeinit(const int reason)",
            "{",
            "}",
        ]
        return "\n".join(lines)

    def _on_tick(self, fragment: LogicFragment) -> str:
        return "\n".join(["void OnTick()", "{", fragment.body, "}"])


def compose(
    payload: Union[ConversionPayload, Mapping[str, Any]],
    parameters: Optional[Sequence[IndicatorParameter]] = None,
) -> str:
    """Generate EA source for ``payload``; see ExpertAdvisorGenerator.generate."""
    return ExpertAdvisorGenerator().generate(payload, parameters)
