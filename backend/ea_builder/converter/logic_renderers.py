"""
PURPOSE: Renders the OnTick body for each trading-logic kind.

Each renderer is a pure function of its own logic config and returns a
LogicFragment: extra input declarations plus the MQL4 statements that go
inside OnTick. Renderers only talk to the indicator through
GetIndicatorValue() and to the broker through the shared order helpers
(HasOpenPosition, OpenOrder, ClosePositions) emitted by the generator.

CALLED BY: converter/code_generator.py (through LOGIC_RENDERERS)
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from ea_builder.config.constants import LogicKind, OrderDirection, ThresholdDirection
from ea_builder.schemas.conversion import CrossoverLogic, CustomLogic, ThresholdLogic

INDENT = "   "


@dataclass(frozen=True)
class LogicFragment:
    """Strategy-specific pieces spliced into the shared EA scaffold."""

    body: str
    inputs: List[str] = field(default_factory=list)


def format_double(value: float) -> str:
    """Render a float as an MQL4 double literal (always with a decimal point or exponent)."""
    text = repr(float(value))
    if "." not in text and "e" not in text:
        text += ".0"
    return text


def _indent(lines: List[str], level: int = 1) -> List[str]:
    return [(INDENT * level + line) if line else "" for line in lines]


def _entry_block(direction: OrderDirection, allow_multiple: bool) -> List[str]:
    """
    Statements that act on one signal: close the opposite side, then open.

    Without stacking the open is guarded by the hasBuy/hasSell flags the
    caller computed before any order was touched.
    """
    if direction is OrderDirection.BUY:
        order_type, opposite, own_flag, opposite_flag = "OP_BUY", -1, "hasBuy", "hasSell"
    else:
        order_type, opposite, own_flag, opposite_flag = "OP_SELL", 1, "hasSell", "hasBuy"

    if allow_multiple:
        return [
            f"if(CloseOppositeSignal) ClosePositions({opposite});",
            f"OpenOrder({order_type});",
        ]
    return [
        f"if(CloseOppositeSignal && {opposite_flag}) ClosePositions({opposite});",
        f"if(!{own_flag}) OpenOrder({order_type});",
    ]


def _position_flags() -> List[str]:
    return [
        "bool hasBuy = HasOpenPosition(1);",
        "bool hasSell = HasOpenPosition(-1);",
        "",
    ]


def _braced(header: str, statements: List[str]) -> List[str]:
    return [header, "{", *_indent(statements), "}"]


def render_crossover(config: CrossoverLogic) -> LogicFragment:
    """Open on fast/slow buffer crosses, optionally reversed."""
    fast, slow = config.fast_buffer, config.slow_buffer

    bullish_action = OrderDirection.SELL if config.reverse_signal else OrderDirection.BUY
    bearish_action = OrderDirection.BUY if config.reverse_signal else OrderDirection.SELL

    lines: List[str] = [
        f"double fast = GetIndicatorValue({fast}, 0);",
        f"double slow = GetIndicatorValue({slow}, 0);",
        f"double fastPrev = GetIndicatorValue({fast}, 1);",
        f"double slowPrev = GetIndicatorValue({slow}, 1);",
        "",
        "if(fast == EMPTY_VALUE || slow == EMPTY_VALUE || "
        "fastPrev == EMPTY_VALUE || slowPrev == EMPTY_VALUE) return;",
        "",
    ]
    if not config.allow_multiple_positions:
        lines.extend(_position_flags())

    lines.extend([
        "bool bullishCross = fastPrev <= slowPrev && fast > slow;",
        "bool bearishCross = fastPrev >= slowPrev && fast < slow;",
        "",
    ])
    if config.reverse_signal:
        lines.append("// Reversed: bullish crosses sell, bearish crosses buy")

    lines.extend(_braced(
        "if(bullishCross)",
        _entry_block(bullish_action, config.allow_multiple_positions),
    ))
    lines.extend(_braced(
        "else if(bearishCross)",
        _entry_block(bearish_action, config.allow_multiple_positions),
    ))

    return LogicFragment(body="\n".join(_indent(lines)))


def _threshold_checks(config: ThresholdLogic) -> Tuple[List[str], List[Tuple[str, str, OrderDirection]]]:
    """Inputs and (signal, expression, action) triples for the enabled breaches."""
    inputs: List[str] = []
    checks: List[Tuple[str, str, OrderDirection]] = []

    wants_upper = config.direction in (ThresholdDirection.ABOVE, ThresholdDirection.BAND)
    wants_lower = config.direction in (ThresholdDirection.BELOW, ThresholdDirection.BAND)

    if wants_upper and config.upper is not None:
        inputs.append(f"input double UpperThreshold = {format_double(config.upper)};")
        checks.append(("buySignal", "value > UpperThreshold", OrderDirection.BUY))
    if wants_lower and config.lower is not None:
        inputs.append(f"input double LowerThreshold = {format_double(config.lower)};")
        checks.append(("sellSignal", "value < LowerThreshold", OrderDirection.SELL))

    return inputs, checks


def render_threshold(config: ThresholdLogic) -> LogicFragment:
    """Open when a buffer breaches its upper (buy) or lower (sell) level."""
    inputs, checks = _threshold_checks(config)

    lines: List[str] = [
        f"double value = GetIndicatorValue({config.buffer}, 0);",
        "if(value == EMPTY_VALUE) return;",
        "",
    ]

    if not checks:
        lines.append(f"// No {config.direction.value} threshold configured: this EA never opens orders")
        return LogicFragment(body="\n".join(_indent(lines)), inputs=inputs)

    if not config.allow_multiple_positions:
        lines.extend(_position_flags())

    for signal, expression, _ in checks:
        lines.append(f"bool {signal} = {expression};")
    lines.append("")

    for signal, _, action in checks:
        lines.extend(_braced(
            f"if({signal})",
            _entry_block(action, config.allow_multiple_positions),
        ))

    return LogicFragment(body="\n".join(_indent(lines)), inputs=inputs)


def render_custom(config: CustomLogic) -> LogicFragment:
    """Embed the user's snippet untouched."""
    return LogicFragment(body=config.snippet)


LOGIC_RENDERERS: Dict[str, Callable[..., LogicFragment]] = {
    LogicKind.CROSSOVER.value: render_crossover,
    LogicKind.THRESHOLD.value: render_threshold,
    LogicKind.CUSTOM.value: render_custom,
}
