"""Pytest fixtures for all tests."""

from datetime import datetime, timezone
from ipaddress import IPv4Address

import pytest
from httpx import AsyncClient, ASGITransport

from config import Config, GeneratorConfig, LoggingConfig
from flakegen import Generator, Settings, TIME_UNIT_NS
from flakegen.generator import to_time_units
from ui.app import create_app

START_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Hand-driven wall clock in nanoseconds; sleep() advances it."""

    def __init__(self, now_ns):
        self.now_ns = now_ns
        self.sleeps = []

    def __call__(self):
        return self.now_ns

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now_ns += round(seconds * 1_000_000_000)

    def advance_units(self, units):
        self.now_ns += units * TIME_UNIT_NS

    def set_unit(self, start_time, elapsed_units):
        """Jump to the start of ``elapsed_units`` after ``start_time``."""
        self.now_ns = (to_time_units(start_time) + elapsed_units) * TIME_UNIT_NS


@pytest.fixture
def start_time():
    return START_TIME


@pytest.fixture
def settings(start_time):
    """Settings with an explicit machine id."""
    return Settings.of(start_time, 42)


@pytest.fixture
def fake_clock(start_time):
    """Clock parked at the start of time unit 1000 after start_time."""
    clock = FakeClock(0)
    clock.set_unit(start_time, 1000)
    return clock


@pytest.fixture
def generator(settings, fake_clock):
    """Generator driven by the fake clock."""
    return Generator.of(settings, clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def live_generator(settings):
    """Generator on the real wall clock."""
    return Generator.of(settings)


@pytest.fixture
def private_resolver():
    """Resolver stub standing in for host address discovery."""
    return lambda: IPv4Address("192.168.1.2")


@pytest.fixture
def app_config(tmp_path):
    """Test config writing logs under tmp_path."""
    return Config(
        generator=GeneratorConfig(start_time="2025-01-01T00:00:00Z", machine_id=7),
        logging=LoggingConfig(level="WARN", file=str(tmp_path / "audit.log"),
                              crash_file=str(tmp_path / "crash.log")),
    )


@pytest.fixture
async def app(app_config):
    """Create test FastAPI app."""
    return create_app(app_config)


@pytest.fixture
async def client(app):
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
