# tests/conftest.py
"""
Shared sample sources and fixtures for the pinelint test suite.
"""

import pytest

from pinelint.validators.constraints import reset_validation_rules


# ═══════════════════════════════════════════════════════════════════════════
# Sample sources
# ═══════════════════════════════════════════════════════════════════════════

MINIMAL_INDICATOR = '''//@version=6
indicator("My Script", overlay=true)
plot(close)
'''

SMA_ASSIGNMENT = '''//@version=6
indicator("SMA")
x = ta.sma(close, 14)
'''

LONG_SHORTTITLE = '''//@version=6
indicator("Test", shorttitle="VeryLongShortTitle")
'''

POSITIONAL_SHORTTITLE = '''//@version=6
indicator("Test", "VeryLongShortTitle")
'''

STRATEGY_SCRIPT = '''//@version=6
strategy("Crossover", "XOVER", overlay=true, max_bars_back=500)
fast = ta.ema(close, 9)
slow = ta.ema(close, 21)
if ta.crossover(fast, slow)
    strategy.entry("Long", strategy.long)
plot(fast, title="Fast")
'''

MULTILINE_CALL = '''//@version=6
indicator("Multi")
table.cell(tbl, 0, 0, "Label",
     text_color = color.white,
     text_size = size.small)
'''

DEPRECATED_TABLE_CELL = '''//@version=6
indicator("Table")
table.cell(tbl, 0, 0, "x", textColor=color.white)
'''

UNBALANCED_CALL = '''//@version=6
indicator("Broken"
plot(close)
'''

NESTED_CALLS = '''//@version=6
indicator("Nested")
v = math.max(ta.sma(close, 10), ta.ema(close, 20))
'''

MISSING_DECLARATIONS = '''x = 1
plot(x, title="x")
'''

END_TO_END = 'indicator("Test","T")\nplot(close)'

LEGACY_SCRIPT = '''//@version=4
study("Legacy")
fast = sma(close, 10)
rsiValue = rsi(close, 14)
spread = abs(fast - close)
plot(fast, title="Fast")
'''

NA_OBJECT_SCRIPT = '''//@version=6
indicator("UDT")
type Point
    float x
    float y
var Point last = na
Point other = na
other := Point.new(1.0, 2.0)
plot(last.x, title="x")
plot((other[1]).y, title="y")
'''

CATALOG = {
    "functions": {
        "fun_table.cell": {
            "name": "table.cell",
            "description": "Defines a table cell.",
            "syntax": "table.cell(table_id, column, row, text, text_color) → void",
            "arguments": [
                {"name": "table_id", "type": "series table", "description": ""},
                {"name": "column", "type": "series int", "description": ""},
                {"name": "row", "type": "series int", "description": ""},
                {"name": "text", "type": "series string", "description": ""},
                {"name": "text_color", "type": "series color", "description": ""},
            ],
        },
        "fun_myLib.doThing": {
            "name": "myLib.doThing",
            "description": "Library function with camelCase parameters.",
            "syntax": "myLib.doThing(srcValue, lookBack)",
            "arguments": [
                {"name": "srcValue", "type": "series float", "description": ""},
                {"name": "lookBack", "type": "simple int", "description": ""},
            ],
        },
        "fun_timenow": {
            "name": "timenow",
            "description": "No arguments.",
            "syntax": "timenow",
        },
        "var_close": {"name": "close", "description": "Close price."},
    }
}


@pytest.fixture(autouse=True)
def _no_loaded_rules():
    """Each test starts without a globally loaded rule table."""
    reset_validation_rules()
    yield
    reset_validation_rules()


@pytest.fixture
def write_script(tmp_path):
    """Write *source* to a ``.pine`` file under ``tmp_path``."""

    def _write(source, name="script.pine"):
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path

    return _write
