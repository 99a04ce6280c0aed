"""
PURPOSE: EA Builder package.

Turns MetaTrader-4 indicator source into a companion Expert Advisor that
calls the indicator through iCustom and trades on its buffers.
"""
