"""
PURPOSE: Pytest fixtures for EA Builder tests.

Provides shared test data and clients including:
- A sample MQL4 indicator with two input parameters
- Ready-made payloads for each trading-logic kind
- A FastAPI TestClient with rate limiting disabled
- Structlog reset between tests
"""

import pytest
import structlog
from fastapi.testclient import TestClient


SAMPLE_INDICATOR = """#property indicator_separate_window
#property indicator_buffers 2

input int FastPeriod = 12;
input int SlowPeriod = 26;

double FastBuffer[];
double SlowBuffer[];

int OnInit() {
  SetIndexBuffer(0, FastBuffer);
  SetIndexBuffer(1, SlowBuffer);
  return(INIT_SUCCEEDED);
}

int OnCalculate(const int rates_total,
                const int prev_calculated,
                const datetime &time[],
                const double &open[],
                const double &high[],
                const double &low[],
                const double &close[],
                const long &tick_volume[],
                const long &volume[],
                const int &spread[])
{
  int start = MathMax(FastPeriod, SlowPeriod);
  for(int i = start; i < rates_total; i++) {
    FastBuffer[i] = iMA(NULL, 0, FastPeriod, 0, MODE_EMA, PRICE_CLOSE, i);
    SlowBuffer[i] = iMA(NULL, 0, SlowPeriod, 0, MODE_EMA, PRICE_CLOSE, i);
  }
  return(rates_total);
}"""


SAMPLE_SNIPPET = """double fast = GetIndicatorValue(0, 0);
double slow = GetIndicatorValue(1, 0);

if(fast == EMPTY_VALUE || slow == EMPTY_VALUE) return;

if(fast > slow && !HasOpenPosition(1)) OpenOrder(OP_BUY);   // custom <rule> "42"
if(fast < slow && !HasOpenPosition(-1)) OpenOrder(OP_SELL);"""


@pytest.fixture(autouse=True)
def reset_structlog():
    """
    PURPOSE: Undo any structlog configuration a test installed.

    The CLI points structlog at the CliRunner's stderr; resetting keeps later
    tests from writing to a closed stream.
    """
    yield
    structlog.reset_defaults()


@pytest.fixture
def sample_indicator() -> str:
    """
    PURPOSE: MQL4 indicator source declaring FastPeriod and SlowPeriod inputs.

    Returns:
        str: Indicator source with two EMA buffers.
    """
    return SAMPLE_INDICATOR


@pytest.fixture
def sample_snippet() -> str:
    """
    PURPOSE: Custom OnTick snippet containing characters that must not be escaped.

    Returns:
        str: Multi-line MQL4 statements.
    """
    return SAMPLE_SNIPPET


def _payload(logic_config: dict, **overrides) -> dict:
    payload = {
        "indicatorName": "MyIndicator",
        "indicatorCode": SAMPLE_INDICATOR,
        "timeframeExpression": "_Period",
        "lots": 0.1,
        "slippage": 3,
        "stopLoss": 300,
        "takeProfit": 600,
        "magicNumber": 123456,
        "logicConfig": logic_config,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_payload():
    """
    PURPOSE: Factory building camelCase payload dicts as the web form sends them.

    Returns:
        Callable: make_payload(logic_config, **overrides) -> dict
    """
    return _payload


@pytest.fixture
def crossover_payload() -> dict:
    """
    PURPOSE: Crossover payload on buffers 0/1 without stacking or reversal.

    Returns:
        dict: camelCase ConversionPayload data.
    """
    return _payload({
        "kind": "crossover",
        "fastBuffer": 0,
        "slowBuffer": 1,
        "allowMultiplePositions": False,
        "reverseSignal": False,
    })


@pytest.fixture
def threshold_payload() -> dict:
    """
    PURPOSE: Threshold band 70/30 on buffer 0 with stacking allowed.

    Returns:
        dict: camelCase ConversionPayload data.
    """
    return _payload({
        "kind": "threshold",
        "buffer": 0,
        "upper": 70,
        "lower": 30,
        "direction": "band",
        "allowMultiplePositions": True,
    })


@pytest.fixture
def custom_payload() -> dict:
    """
    PURPOSE: Custom-snippet payload.

    Returns:
        dict: camelCase ConversionPayload data.
    """
    return _payload({"kind": "custom", "snippet": SAMPLE_SNIPPET})


@pytest.fixture
def client():
    """
    PURPOSE: FastAPI TestClient running the full app lifespan.

    Rate limiting is switched off so the test session never hits the
    per-minute tiers.

    Returns:
        TestClient: Client bound to a freshly created app.
    """
    from ea_builder.core.rate_limit import limiter
    from ea_builder.main import create_app

    limiter.enabled = False
    with TestClient(create_app()) as test_client:
        yield test_client
    limiter.enabled = True
