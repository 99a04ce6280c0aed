"""
PURPOSE: Exceptions raised by the indicator-to-EA converter.

CALLED BY:
    - converter/code_generator.py (raised)
    - api/routes_converter.py, cli.py (caught and reported)
"""


class ConversionError(ValueError):
    """The payload cannot be turned into a complete Expert Advisor."""


class UnknownLogicKindError(ConversionError):
    """The payload selects a trading-logic kind the generator does not know."""

    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(
            f"Unknown logic kind {kind!r}; expected one of: crossover, threshold, custom"
        )
