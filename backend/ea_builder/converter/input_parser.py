"""
PURPOSE: Detects user-tunable parameters declared in MQL4 indicator source.

Recognizes the narrow declaration shape

    input  <type> <name> = <value>;
    extern <type> <name> = <value>;

and returns each parameter's name together with its default value exactly as
written. The rest of the MQL4 grammar is not parsed.

Rules:
    - Whitespace between tokens may include line breaks, but the value must
      end with ';' on the line where it starts.
    - Declarations inside /* ... */ block comments or after a '//' comment
      marker are ignored.
    - The first declaration of a name wins; later re-declarations are dropped.
    - One declaration per line; a second declaration after another on the
      same line is not detected.
    - A ';' inside a string default ends the value early (no string lexing).

CALLED BY:
    - converter/code_generator.py (when no parameter list is supplied)
    - api/routes_converter.py (inputs endpoint)
    - cli.py (inputs and generate commands)
"""

import re
from typing import List

from ea_builder.config.constants import CARRIABLE_MQL_TYPES, INPUT_QUALIFIERS
from ea_builder.schemas.conversion import IndicatorParameter
from ea_builder.utils.logger import get_logger

logger = get_logger("converter.input_parser")


_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)

_DECLARATION = re.compile(
    r"^[ \t]*(?:" + "|".join(INPUT_QUALIFIERS) + r")\s+"
    r"(?:const\s+)?"
    r"(?P<type>[A-Za-z_]\w*)\s+"
    r"(?P<name>[A-Za-z_]\w*)\s*"
    r"=[ \t]*(?P<value>[^;\r\n]*?)[ \t]*;",
    re.MULTILINE,
)

_INT_LITERAL = re.compile(r"^[+-]?(?:0[xX][0-9A-Fa-f]+|\d+)$")
_FLOAT_LITERAL = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")


def _strip_block_comments(source_text: str) -> str:
    """Blank out /* ... */ comments, keeping their line breaks so line anchors still hold."""
    return _BLOCK_COMMENT.sub(lambda m: "\n" * m.group(0).count("\n"), source_text)


def extract_parameters(source_text: str) -> List[IndicatorParameter]:
    """
    Scan indicator source for input/extern declarations.

    Args:
        source_text: Raw MQL4 source; need not be valid MQL4.

    Returns:
        Parameters in order of first appearance. Empty when nothing matches.

    Raises:
        TypeError: If source_text is not a str.
    """
    if not isinstance(source_text, str):
        raise TypeError(
            f"indicator source must be str, got {type(source_text).__name__}"
        )

    parameters: List[IndicatorParameter] = []
    seen = set()

    for match in _DECLARATION.finditer(_strip_block_comments(source_text)):
        name = match.group("name")
        if name in seen:
            logger.debug("indicator_input_redeclared", name=name)
            continue
        seen.add(name)
        parameters.append(
            IndicatorParameter(
                name=name,
                default_value=match.group("value").strip(),
                mql_type=match.group("type"),
            )
        )

    logger.debug(
        "indicator_inputs_extracted",
        count=len(parameters),
        source_length=len(source_text),
    )
    return parameters


def infer_mql_type(default_value: str) -> str:
    """
    Pick an MQL4 type able to hold a default value literal.

    Used when a parameter carries no declared type the EA can reuse. Enum
    constants such as PERIOD_H1 or MODE_EMA are integers in MQL4 and map to int.
    """
    value = default_value.strip()

    if value in ("true", "false"):
        return "bool"
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return "string"
    if value.startswith("D'"):
        return "datetime"
    if value.startswith("C'") or value.startswith("clr"):
        return "color"
    if _INT_LITERAL.match(value):
        return "int"
    if _FLOAT_LITERAL.match(value):
        return "double"
    return "int"


def carried_mql_type(parameter: IndicatorParameter) -> str:
    """
    Type used to re-declare a carried input in the EA.

    The indicator's declared type wins when it is a built-in type or a
    standard ENUM_* type, so `input double Level = 50;` stays a double.
    Enums defined inside the indicator do not exist in the EA and fall back
    to the literal's type.
    """
    declared = parameter.mql_type
    if declared and (declared in CARRIABLE_MQL_TYPES or declared.startswith("ENUM_")):
        return declared
    return infer_mql_type(parameter.default_value)
