import pytest

from translit_probe.core.driver import DriverTimings
from tests.fakes import FakePage


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def fast_timings():
    return DriverTimings(
        strategy_timeout_ms=200,
        output_timeout_ms=100,
        settle_delay_ms=0,
        pre_fill_delay_ms=0,
        probe_delay_ms=0,
        negative_settle_ms=0,
        clear_window_ms=0,
        poll_interval_ms=5,
        read_timeout_ms=50,
    )
