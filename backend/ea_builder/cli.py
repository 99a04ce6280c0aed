"""
PURPOSE: Command-line interface for EA Builder.

Commands:
    ea-builder inputs SOURCE            list the indicator's input/extern parameters
    ea-builder generate SOURCE [...]    write the generated Expert Advisor

SOURCE is a path to an .mq4 file or '-' for standard input. Generated code
goes to standard output unless --output is given; logs and status messages
go to standard error. Exit code is 0 on success and 1 on malformed input or
configuration.
"""

import codecs
import json
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, NoReturn, Optional

import typer
import yaml
from pydantic.alias_generators import to_camel
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ea_builder.config.settings import settings
from ea_builder.converter.code_generator import compose
from ea_builder.converter.exceptions import ConversionError
from ea_builder.converter.input_parser import extract_parameters
from ea_builder.utils.logger import get_logger, setup_logging
from ea_builder.utils.validators import (
    normalize_buffer_index,
    normalize_risk,
    normalize_threshold,
    validate_indicator_name,
)

logger = get_logger("cli")

app = typer.Typer(add_completion=False, help="Convert MQL4 indicators into Expert Advisors")

out = Console()
err = Console(stderr=True)


# ════════════════════════════════════════════════════════════════
# Helpers
# ════════════════════════════════════════════════════════════════


def _fail(message: str) -> NoReturn:
    err.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(code=1)


def _decode_source(data: bytes) -> str:
    """Decode indicator bytes; MetaEditor saves UTF-16 with a BOM, everything else is UTF-8."""
    if data.startswith(codecs.BOM_UTF16_LE) or data.startswith(codecs.BOM_UTF16_BE):
        return data.decode("utf-16")
    return data.decode("utf-8-sig")


def _read_source(source: str) -> str:
    """Read indicator text from a path or '-' (stdin); exits with code 1 when unreadable."""
    try:
        if source == "-":
            data = typer.get_binary_stream("stdin").read()
        else:
            data = Path(source).read_bytes()
    except OSError as e:
        _fail(f"cannot read {source}: {e}")

    try:
        return _decode_source(data)
    except UnicodeDecodeError as e:
        _fail(f"{source} is not valid text: {e}")


def _load_config_file(path: Path) -> Dict[str, Any]:
    """Load a YAML or JSON mapping of payload fields."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        _fail(f"cannot load config {path}: {e}")
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        _fail(f"config {path} must contain a mapping, got {type(raw).__name__}")
    return raw


def _pick(mapping: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Look up a snake_case key, falling back to its camelCase alias."""
    if key in mapping:
        return mapping[key]
    return mapping.get(to_camel(key), default)


def _first(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


# ════════════════════════════════════════════════════════════════
# Commands
# ════════════════════════════════════════════════════════════════


@app.callback()
def main_callback(
    log_level: str = typer.Option("WARNING", "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
):
    setup_logging(log_level, stream=sys.stderr)


@app.command("inputs")
def inputs_command(
    source: str = typer.Argument(..., help="Indicator .mq4 file, or '-' for stdin"),
    as_json: bool = typer.Option(False, "--json", help="Print parameters as JSON"),
):
    """List the input/extern parameters declared by an indicator."""
    text = _read_source(source)
    parameters = extract_parameters(text)

    if as_json:
        typer.echo(json.dumps([p.model_dump(by_alias=True) for p in parameters], indent=2))
        return

    if not parameters:
        out.print("[yellow]No input or extern parameters were detected.[/yellow]")
        return

    table = Table(title=f"Detected parameters ({len(parameters)})")
    table.add_column("Name")
    table.add_column("Default")
    for param in parameters:
        table.add_row(escape(param.name), escape(param.default_value))
    out.print(table)


@app.command("generate")
def generate_command(
    source: str = typer.Argument(..., help="Indicator .mq4 file, or '-' for stdin"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML/JSON file with payload fields"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the EA here instead of stdout"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Indicator file name without extension"),
    timeframe: Optional[str] = typer.Option(None, "--timeframe", "-t", help="Timeframe expression, e.g. _Period or PERIOD_H1"),
    lots: Optional[float] = typer.Option(None, "--lots", help="Lot size"),
    slippage: Optional[int] = typer.Option(None, "--slippage", help="Slippage in points"),
    stop_loss: Optional[int] = typer.Option(None, "--stop-loss", help="Stop-loss in points, 0 disables"),
    take_profit: Optional[int] = typer.Option(None, "--take-profit", help="Take-profit in points, 0 disables"),
    magic_number: Optional[int] = typer.Option(None, "--magic", help="Magic number"),
    logic: Optional[str] = typer.Option(None, "--logic", "-l", help="crossover, threshold or custom"),
    fast_buffer: Optional[int] = typer.Option(None, "--fast-buffer", help="Crossover fast buffer index"),
    slow_buffer: Optional[int] = typer.Option(None, "--slow-buffer", help="Crossover slow buffer index"),
    reverse: Optional[bool] = typer.Option(None, "--reverse/--no-reverse", help="Swap crossover buy/sell"),
    allow_multiple: Optional[bool] = typer.Option(
        None, "--allow-multiple/--single-position", help="Allow stacking positions in one direction"
    ),
    buffer: Optional[int] = typer.Option(None, "--buffer", help="Threshold buffer index"),
    upper: Optional[str] = typer.Option(None, "--upper", help="Upper threshold (buy when above)"),
    lower: Optional[str] = typer.Option(None, "--lower", help="Lower threshold (sell when below)"),
    direction: Optional[str] = typer.Option(None, "--direction", help="above, below or band"),
    snippet_file: Optional[Path] = typer.Option(None, "--snippet-file", help="MQL4 file embedded as OnTick body"),
):
    """Generate an Expert Advisor that trades on the indicator's buffers."""
    text = _read_source(source)
    file_cfg = _load_config_file(config) if config else {}
    file_logic = _pick(file_cfg, "logic_config") or {}
    if not isinstance(file_logic, dict):
        _fail("logicConfig in the config file must be a mapping")

    default_name = Path(source).stem if source != "-" else settings.DEFAULT_INDICATOR_NAME
    indicator_name = _first(name, _pick(file_cfg, "indicator_name"), default_name)
    if not validate_indicator_name(indicator_name):
        err.print(
            f"[yellow]Warning:[/yellow] {escape(repr(indicator_name))} does not look like a bare indicator "
            "file name; iCustom expects the name without path or extension"
        )

    risk = normalize_risk(
        lots=_first(lots, _pick(file_cfg, "lots"), settings.DEFAULT_LOTS),
        slippage=_first(slippage, _pick(file_cfg, "slippage"), settings.DEFAULT_SLIPPAGE),
        stop_loss=_first(stop_loss, _pick(file_cfg, "stop_loss"), settings.DEFAULT_STOP_LOSS),
        take_profit=_first(take_profit, _pick(file_cfg, "take_profit"), settings.DEFAULT_TAKE_PROFIT),
        magic_number=_first(magic_number, _pick(file_cfg, "magic_number"), settings.DEFAULT_MAGIC_NUMBER),
    )

    kind = _first(logic, file_logic.get("kind"), "crossover")
    # Left for the schema to parse so "false" or "no" from a config file is not truthy
    stacking = _first(allow_multiple, _pick(file_logic, "allow_multiple_positions"), False)

    logic_config: Dict[str, Any] = {"kind": kind}
    if kind == "crossover":
        logic_config.update(
            fast_buffer=normalize_buffer_index(_first(fast_buffer, _pick(file_logic, "fast_buffer"), 0)),
            slow_buffer=normalize_buffer_index(_first(slow_buffer, _pick(file_logic, "slow_buffer"), 1)),
            allow_multiple_positions=stacking,
            reverse_signal=_first(reverse, _pick(file_logic, "reverse_signal"), False),
        )
    elif kind == "threshold":
        logic_config.update(
            buffer=normalize_buffer_index(_first(buffer, file_logic.get("buffer"), 0)),
            upper=normalize_threshold(_first(upper, file_logic.get("upper"))),
            lower=normalize_threshold(_first(lower, file_logic.get("lower"))),
            direction=_first(direction, file_logic.get("direction"), "band"),
            allow_multiple_positions=stacking,
        )
    elif kind == "custom":
        snippet = file_logic.get("snippet")
        if snippet_file is not None:
            try:
                snippet = snippet_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                _fail(f"cannot read snippet {snippet_file}: {e}")
        if snippet is None:
            _fail("custom logic needs --snippet-file or logicConfig.snippet in the config file")
        logic_config["snippet"] = snippet

    payload = {
        "indicator_name": indicator_name,
        "indicator_code": text,
        "timeframe_expression": _first(timeframe, _pick(file_cfg, "timeframe_expression"), settings.DEFAULT_TIMEFRAME),
        **risk,
        "logic_config": logic_config,
    }

    parameters = extract_parameters(text)
    try:
        code = compose(payload, parameters)
    except ConversionError as e:
        logger.error("conversion_failed", error=str(e), logic_kind=kind)
        _fail(str(e))

    if output is None:
        typer.echo(code, nl=False)
        return

    try:
        output.write_text(code, encoding="utf-8")
    except OSError as e:
        _fail(f"cannot write {output}: {e}")
    err.print(f"[green]Wrote[/green] {escape(str(output))} ({len(parameters)} indicator parameters carried over)")


def main() -> None:
    """
    CLI entrypoint.

    This module is intended to be executed via:
      - ea-builder (console script)
      - python -m ea_builder
    """
    app()


if __name__ == "__main__":
    main()
