"""
PURPOSE: Tests for Expert Advisor generation.

Covers:
- Crossover, threshold and custom OnTick bodies
- Risk inputs and indicator parameter carry-through into iCustom
- Determinism and failure modes (unknown kind, malformed payloads)
"""

from types import SimpleNamespace

import pytest

from ea_builder.converter import (
    ConversionError,
    ExpertAdvisorGenerator,
    UnknownLogicKindError,
    compose,
    generated_filename,
)
from ea_builder.converter.code_generator import _mql_string
from ea_builder.converter.logic_renderers import (
    format_double,
    render_crossover,
    render_custom,
    render_threshold,
)
from ea_builder.schemas.conversion import (
    ConversionPayload,
    CrossoverLogic,
    CustomLogic,
    IndicatorParameter,
    ThresholdLogic,
)


def _on_tick(code: str) -> str:
    """Text of the OnTick function, from its signature to the end of the file."""
    return code[code.index("void OnTick()"):]


def _open_order_lines(code: str):
    return [line.strip() for line in _on_tick(code).splitlines() if "OpenOrder(OP_" in line]


class TestCrossoverGeneration:
    """Test EA output for crossover logic."""

    def test_magic_number_and_buffer_reads(self, crossover_payload):
        """Test the risk inputs and the four buffer reads."""
        code = compose(crossover_payload)

        assert "input int MagicNumber = 123456;" in code
        assert "input double Lots = 0.1;" in code
        assert "input int Slippage = 3;" in code
        assert "input int StopLossPoints = 300;" in code
        assert "input int TakeProfitPoints = 600;" in code
        for call in (
            "GetIndicatorValue(0, 0)",
            "GetIndicatorValue(1, 0)",
            "GetIndicatorValue(0, 1)",
            "GetIndicatorValue(1, 1)",
        ):
            assert call in _on_tick(code)

    def test_cross_conditions(self, crossover_payload):
        """Test prior-bar at-or-below/at-or-above and current-bar strict comparisons."""
        code = compose(crossover_payload)
        assert "bool bullishCross = fastPrev <= slowPrev && fast > slow;" in code
        assert "bool bearishCross = fastPrev >= slowPrev && fast < slow;" in code

    def test_empty_value_guard(self, crossover_payload):
        """Test that missing indicator values stop the tick early."""
        tick = _on_tick(compose(crossover_payload))
        assert "EMPTY_VALUE) return;" in tick
        assert tick.index("EMPTY_VALUE) return;") < tick.index("if(bullishCross)")

    def test_single_position_guards_every_open(self, crossover_payload):
        """Test that without stacking every open is behind a same-direction check."""
        code = compose(crossover_payload)
        assert _open_order_lines(code) == [
            "if(!hasBuy) OpenOrder(OP_BUY);",
            "if(!hasSell) OpenOrder(OP_SELL);",
        ]
        assert "bool hasBuy = HasOpenPosition(1);" in code
        assert "bool hasSell = HasOpenPosition(-1);" in code

    def test_flags_computed_before_closing(self, crossover_payload):
        """Test that position flags are read before any ClosePositions call."""
        tick = _on_tick(compose(crossover_payload))
        assert tick.index("HasOpenPosition(1)") < tick.index("ClosePositions(")

    def test_stacking_drops_guards(self, make_payload):
        """Test that allowing multiple positions opens unconditionally."""
        code = compose(make_payload({"kind": "crossover", "allowMultiplePositions": True}))
        assert _open_order_lines(code) == ["OpenOrder(OP_BUY);", "OpenOrder(OP_SELL);"]
        assert "HasOpenPosition(" not in _on_tick(code)

    def test_reverse_swaps_actions(self, make_payload):
        """Test that a bullish cross sells and a bearish cross buys when reversed."""
        code = compose(make_payload({"kind": "crossover", "reverseSignal": True}))
        tick = _on_tick(code)

        bullish = tick[tick.index("if(bullishCross)"):tick.index("else if(bearishCross)")]
        bearish = tick[tick.index("else if(bearishCross)"):]
        assert "OpenOrder(OP_SELL)" in bullish
        assert "OpenOrder(OP_BUY)" not in bullish
        assert "OpenOrder(OP_BUY)" in bearish
        assert "OpenOrder(OP_SELL)" not in bearish

    def test_custom_buffer_indices(self, make_payload):
        """Test non-default fast/slow buffers."""
        code = compose(make_payload({"kind": "crossover", "fastBuffer": 2, "slowBuffer": 5}))
        assert "double fast = GetIndicatorValue(2, 0);" in code
        assert "double slowPrev = GetIndicatorValue(5, 1);" in code

    def test_close_opposite_input(self, crossover_payload):
        """Test that closing on the opposite signal is switchable in the EA."""
        code = compose(crossover_payload)
        assert "input bool CloseOppositeSignal = true;" in code
        assert "if(CloseOppositeSignal && hasSell) ClosePositions(-1);" in code
        assert "if(CloseOppositeSignal && hasBuy) ClosePositions(1);" in code


class TestThresholdGeneration:
    """Test EA output for threshold logic."""

    def test_band_with_stacking(self, threshold_payload):
        """Test both breaches and no same-direction guard."""
        code = compose(threshold_payload)
        tick = _on_tick(code)

        assert "input double UpperThreshold = 70.0;" in code
        assert "input double LowerThreshold = 30.0;" in code
        assert "bool buySignal = value > UpperThreshold;" in tick
        assert "bool sellSignal = value < LowerThreshold;" in tick
        assert "HasOpenPosition(" not in tick
        assert _open_order_lines(code) == ["OpenOrder(OP_BUY);", "OpenOrder(OP_SELL);"]

    def test_buffer_read_once(self, make_payload):
        """Test that the configured buffer is read on the current bar."""
        code = compose(make_payload({"kind": "threshold", "buffer": 3, "upper": 1.5}))
        assert "double value = GetIndicatorValue(3, 0);" in code
        assert "if(value == EMPTY_VALUE) return;" in code

    def test_single_position_guards(self, make_payload):
        """Test same-direction guards when stacking is off."""
        code = compose(make_payload({"kind": "threshold", "upper": 70, "lower": 30}))
        assert _open_order_lines(code) == [
            "if(!hasBuy) OpenOrder(OP_BUY);",
            "if(!hasSell) OpenOrder(OP_SELL);",
        ]

    def test_above_ignores_lower(self, make_payload):
        """Test that direction 'above' only checks the upper bound."""
        code = compose(make_payload({
            "kind": "threshold", "upper": 80, "lower": 20, "direction": "above",
        }))
        assert "LowerThreshold" not in code
        assert "sellSignal" not in code
        assert _open_order_lines(code) == ["if(!hasBuy) OpenOrder(OP_BUY);"]

    def test_below_ignores_upper(self, make_payload):
        """Test that direction 'below' only checks the lower bound."""
        code = compose(make_payload({
            "kind": "threshold", "upper": 80, "lower": 20, "direction": "below",
        }))
        assert "UpperThreshold" not in code
        assert "bool sellSignal = value < LowerThreshold;" in code
        assert _open_order_lines(code) == ["if(!hasSell) OpenOrder(OP_SELL);"]

    def test_undefined_bound_emits_no_check(self, make_payload):
        """Test that a missing bound never fires instead of comparing against garbage."""
        code = compose(make_payload({"kind": "threshold", "lower": -0.5}))
        assert "UpperThreshold" not in code
        assert "buySignal" not in code
        assert "input double LowerThreshold = -0.5;" in code

    def test_no_bounds_never_trades(self, make_payload):
        """Test that a band without bounds produces an EA with no entries."""
        code = compose(make_payload({"kind": "threshold"}))
        assert "never opens orders" in _on_tick(code)
        assert _open_order_lines(code) == []
        assert "// Strategy settings" not in code

    def test_independent_signal_blocks(self, threshold_payload):
        """Test that buy and sell breaches are evaluated in separate if blocks."""
        tick = _on_tick(compose(threshold_payload))
        assert "if(buySignal)" in tick
        assert "if(sellSignal)" in tick
        assert "else if(sellSignal)" not in tick


class TestCustomGeneration:
    """Test EA output for custom snippets."""

    def test_snippet_embedded_verbatim_once(self, custom_payload, sample_snippet):
        """Test that the snippet is the OnTick body, unmodified and not duplicated."""
        code = compose(custom_payload)
        assert code.count(sample_snippet) == 1
        assert "void OnTick()\n{\n" + sample_snippet + "\n}\n" in code

    def test_scaffold_still_present(self, custom_payload):
        """Test that helpers the snippet relies on are emitted."""
        code = compose(custom_payload)
        assert "double GetIndicatorValue(int bufferIndex_, int barShift_)" in code
        assert "bool HasOpenPosition(int direction)" in code
        assert "int OpenOrder(int orderType)" in code
        assert "void ClosePositions(int direction)" in code

    def test_empty_snippet(self, make_payload):
        """Test that an empty snippet yields an empty OnTick."""
        code = compose(make_payload({"kind": "custom", "snippet": ""}))
        assert code.endswith("void OnTick()\n{\n\n}\n")


class TestParameterCarryThrough:
    """Test that indicator inputs reach the EA and iCustom."""

    def test_inputs_redeclared_once(self, crossover_payload):
        """Test that each indicator parameter becomes exactly one EA input."""
        code = compose(crossover_payload)
        assert code.count("input int FastPeriod = 12;") == 1
        assert code.count("input int SlowPeriod = 26;") == 1

    def test_icustom_argument_order(self, crossover_payload):
        """Test that iCustom passes parameters in declaration order before buffer/shift."""
        code = compose(crossover_payload)
        assert (
            "return iCustom(NULL, _Period, IndicatorName, FastPeriod, SlowPeriod, bufferIndex_, barShift_);"
            in code
        )

    def test_single_icustom_call_site(self, crossover_payload):
        """Test that OnTick never calls iCustom directly."""
        code = compose(crossover_payload)
        assert code.count("iCustom(") == 1
        assert "iCustom(" not in _on_tick(code)

    def test_explicit_parameters_override_extraction(self, crossover_payload):
        """Test that a caller-supplied parameter list is used as given."""
        params = [IndicatorParameter(name="Depth", default_value="1.25")]
        code = compose(crossover_payload, params)
        assert "input double Depth = 1.25;" in code
        assert "FastPeriod" not in code
        assert "iCustom(NULL, _Period, IndicatorName, Depth, bufferIndex_, barShift_)" in code

    def test_no_parameters(self, make_payload):
        """Test an indicator without inputs."""
        code = compose(make_payload({"kind": "crossover"}, indicatorCode=""))
        assert "// No input/extern parameters were detected in the indicator" in code
        assert "iCustom(NULL, _Period, IndicatorName, bufferIndex_, barShift_)" in code

    def test_timeframe_expression_verbatim(self, make_payload):
        """Test that the timeframe expression is inserted as written."""
        code = compose(make_payload({"kind": "crossover"}, timeframeExpression="PERIOD_H1"))
        assert "iCustom(NULL, PERIOD_H1, IndicatorName," in code

    def test_indicator_name_is_escaped(self, make_payload):
        """Test that quotes in the name cannot break the string literal."""
        code = compose(make_payload({"kind": "crossover"}, indicatorName='My "Best" Osc'))
        assert 'input string IndicatorName = "My \\"Best\\" Osc";' in code

    @pytest.mark.parametrize("name", ["Lots", "MagicNumber", "IndicatorName", "UpperThreshold", "OnTick"])
    def test_reserved_name_clash_raises(self, make_payload, name):
        """Test that an input named like an EA identifier is refused instead of redeclared."""
        payload = make_payload({"kind": "crossover"}, indicatorCode=f"input double {name} = 1.5;")
        with pytest.raises(ConversionError) as exc_info:
            compose(payload)
        assert name in str(exc_info.value)

    def test_reserved_name_clash_lists_every_name(self, crossover_payload):
        """Test that all clashing inputs are reported at once."""
        params = [
            IndicatorParameter(name="Slippage", default_value="2"),
            IndicatorParameter(name="Period", default_value="14"),
            IndicatorParameter(name="StopLossPoints", default_value="0"),
        ]
        with pytest.raises(ConversionError) as exc_info:
            compose(crossover_payload, params)
        assert "Slippage, StopLossPoints" in str(exc_info.value)

    def test_inputs_named_buffer_and_shift(self, make_payload):
        """Test that common input names cannot shadow the accessor's own arguments."""
        code = compose(make_payload(
            {"kind": "crossover"},
            indicatorCode="input int shift = 2;\ninput int buffer = 5;",
        ))
        assert "input int shift = 2;" in code
        assert "input int buffer = 5;" in code
        assert "double GetIndicatorValue(int bufferIndex_, int barShift_)" in code
        assert "iCustom(NULL, _Period, IndicatorName, shift, buffer, bufferIndex_, barShift_)" in code

    def test_declared_type_carried(self, make_payload):
        """Test that a double input with an integral default stays a double."""
        code = compose(make_payload({"kind": "crossover"}, indicatorCode="input double Level = 50;"))
        assert "input double Level = 50;" in code
        assert "input int Level" not in code

    def test_name_with_line_break_rejected(self, make_payload):
        """Test that a name that would break the IndicatorName literal is refused."""
        with pytest.raises(ConversionError):
            compose(make_payload({"kind": "crossover"}, indicatorName="My\nIndicator"))

    def test_string_literal_escapes_control_characters(self):
        """Test MQL4 string escaping of quotes, backslashes and control characters."""
        assert _mql_string('a"b\\c\nd\te\r') == '"a\\"b\\\\c\\nd\\te\\r"'


class TestRiskInputs:
    """Test risk input declarations and order helpers."""

    def test_zero_stop_loss_is_declared_and_skipped(self, make_payload):
        """Test that SL 0 stays an input and the order helper only applies it when positive."""
        code = compose(make_payload({"kind": "crossover"}, stopLoss=0, takeProfit=0))
        assert "input int StopLossPoints = 0;" in code
        assert "input int TakeProfitPoints = 0;" in code
        assert "if(StopLossPoints > 0)" in code
        assert "if(TakeProfitPoints > 0)" in code

    def test_fractional_lots(self, make_payload):
        """Test lot sizes rendered as double literals."""
        code = compose(make_payload({"kind": "crossover"}, lots=2))
        assert "input double Lots = 2.0;" in code

    def test_orders_tagged_with_magic_number(self, crossover_payload):
        """Test that order helpers filter and send with the magic number."""
        code = compose(crossover_payload)
        assert "OrderMagicNumber() != MagicNumber" in code
        assert 'IndicatorName + " EA", MagicNumber' in code


class TestGeneratorBehaviour:
    """Test determinism, structure and error handling."""

    def test_deterministic(self, crossover_payload):
        """Test that the same payload yields byte-identical output."""
        assert compose(crossover_payload) == compose(crossover_payload)

    def test_model_and_mapping_inputs_agree(self, threshold_payload):
        """Test that a validated model and its raw mapping generate the same code."""
        model = ConversionPayload.model_validate(threshold_payload)
        assert ExpertAdvisorGenerator().generate(model) == compose(threshold_payload)

    def test_file_structure(self, crossover_payload):
        """Test section order and balanced braces."""
        code = compose(crossover_payload)
        assert code.startswith("//+")
        assert code.endswith("}\n")
        assert "#property strict" in code
        assert code.count("{") == code.count("}")
        assert (
            code.index("input double Lots")
            < code.index("input string IndicatorName")
            < code.index("double GetIndicatorValue")
            < code.index("int OnInit()")
            < code.index("void OnTick()")
        )

    def test_header_names_generated_file(self, crossover_payload):
        """Test that the banner names the suggested file."""
        assert "MyIndicator_EA.mq4" in compose(crossover_payload).splitlines()[1]

    def test_generated_filename(self):
        """Test the suggested file name."""
        assert generated_filename("MACD_Custom") == "MACD_Custom_EA.mq4"

    def test_unknown_kind_in_mapping(self, make_payload):
        """Test that an unknown kind raises UnknownLogicKindError with the kind."""
        with pytest.raises(UnknownLogicKindError) as exc_info:
            compose(make_payload({"kind": "martingale"}))
        assert exc_info.value.kind == "martingale"
        assert "martingale" in str(exc_info.value)

    def test_missing_kind_in_mapping(self, make_payload):
        """Test that a logic config without kind is an unknown kind."""
        with pytest.raises(UnknownLogicKindError):
            compose(make_payload({"fastBuffer": 0}))

    def test_unknown_kind_on_unvalidated_model(self):
        """Test that the dispatcher rejects kinds that bypassed validation."""
        payload = ConversionPayload.model_construct(
            indicator_name="MyIndicator",
            logic_config=SimpleNamespace(kind="grid"),
        )
        with pytest.raises(UnknownLogicKindError):
            compose(payload)

    def test_unknown_kind_is_conversion_error(self):
        """Test the error hierarchy used by API and CLI handlers."""
        assert issubclass(UnknownLogicKindError, ConversionError)
        assert issubclass(ConversionError, ValueError)

    def test_invalid_payload(self, make_payload):
        """Test that schema violations become ConversionError."""
        with pytest.raises(ConversionError):
            compose(make_payload({"kind": "crossover"}, lots=0))

    def test_non_mapping_payload(self):
        """Test that unsupported payload types are rejected."""
        with pytest.raises(ConversionError):
            compose(["not", "a", "payload"])


class TestLogicRenderers:
    """Test renderers on their own configs."""

    def test_crossover_fragment_has_no_inputs(self):
        """Test that crossover needs no extra EA inputs."""
        fragment = render_crossover(CrossoverLogic())
        assert fragment.inputs == []
        assert "bullishCross" in fragment.body

    def test_threshold_fragment_inputs(self):
        """Test that threshold levels become EA inputs."""
        fragment = render_threshold(ThresholdLogic(buffer=0, upper=1, lower=-1))
        assert fragment.inputs == [
            "input double UpperThreshold = 1.0;",
            "input double LowerThreshold = -1.0;",
        ]

    def test_custom_fragment_is_snippet(self):
        """Test that the custom renderer returns the snippet unchanged."""
        snippet = "  Print(\"tick\");\t\n"
        assert render_custom(CustomLogic(snippet=snippet)).body == snippet

    @pytest.mark.parametrize("value,expected", [
        (0.1, "0.1"),
        (2, "2.0"),
        (70.0, "70.0"),
        (-0.5, "-0.5"),
        (1e-7, "1e-07"),
    ])
    def test_format_double(self, value, expected):
        """Test MQL4 double literal rendering."""
        assert format_double(value) == expected
