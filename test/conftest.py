import asyncio
from datetime import datetime, timedelta

import pytest

from loadscope.device import MockLoadCell
from loadscope.session import ConnectionManager, ScheduledTask, SessionController, SessionState
from loadscope.system import MonitorConfig
from loadscope.types import CalibrationData, EquipmentData, RenderTransient, TestMetadata
from loadscope.util import TEST_LOGLEVEL, shutdown_log, start_log

MOCK_ADDRESS = "mock"


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "slow: marks test as slow running test")
    config.addinivalue_line(
        "markers", "hardware: marks test that require physical hardware"
    )


class ManualScheduler:
    """Scheduler that only runs tasks when told to."""

    def __init__(self):
        self.tasks: list[ScheduledTask] = []

    def call_later(self, delay, callback, name=""):
        task = ScheduledTask(delay, callback, name)
        self.tasks.append(task)
        return task

    def pending(self, name=""):
        return [
            t
            for t in self.tasks
            if not t.started and not t.cancelled and t.name.startswith(name)
        ]

    def delays(self, name=""):
        return [t.delay for t in self.pending(name)]

    async def run_next(self, name=""):
        pending = self.pending(name)
        assert pending, f"no pending task named '{name}*'"
        await pending[0].run()
        return pending[0]

    def shutdown(self):
        for task in self.tasks:
            task.cancel()


class FakeClock:
    """Monotonic clock and wall clock that only move on `advance`."""

    def __init__(self, start=datetime(2025, 3, 14, 9, 30, 0)):
        self.t = 0.0
        self.start = start

    def __call__(self) -> float:
        return self.t

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.t)

    def advance(self, seconds: float):
        self.t += seconds


class RecordingObserver:
    def __init__(self):
        self.samples = []
        self.statuses = []
        self.controls = []
        self.clears = 0
        self.metadata = []

    def on_sample_retained(self, sample, peak):
        self.samples.append((sample, peak))

    def on_status(self, status):
        self.statuses.append(status)

    def on_controls(self, controls):
        self.controls.append(controls)

    def on_clear(self):
        self.clears += 1

    def on_metadata_changed(self, metadata):
        self.metadata.append(metadata)

    def status_texts(self, level=None):
        return [s.text for s in self.statuses if level is None or s.level == level]


def complete_metadata() -> TestMetadata:
    calibration = CalibrationData(
        **{name: "x" for name in CalibrationData.__dataclass_fields__}
    )
    calibration.load_cell_serial_no = "LC-0042"
    equipment = EquipmentData(
        **{name: "x" for name in EquipmentData.__dataclass_fields__}
    )
    equipment.rated_load_capacity = "50"
    equipment.proof_load_percentage = "125"
    return TestMetadata(calibration=calibration, equipment=equipment)


@pytest.fixture(autouse=True, scope="session")
def test_log(tmp_path_factory):
    log_dir = tmp_path_factory.mktemp("logs")
    start_log(
        log_level=TEST_LOGLEVEL,
        log_to_stdout=True,
        log_to_file=True,
        log_path=str(log_dir / "loadscope.log"),
        error_log_path=str(log_dir / "error.log"),
        enqueue=False,
    )
    yield
    shutdown_log()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def device():
    return MockLoadCell(address=MOCK_ADDRESS)


@pytest.fixture
def state():
    return SessionState(metadata=complete_metadata())


@pytest.fixture
def connection(state, device):
    return ConnectionManager(
        state, address=MOCK_ADDRESS, device_factory=lambda address, **kw: device
    )


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def make_controller(connection, scheduler, clock, observer):
    """Build a controller around the mock device, manual scheduler and fake clock."""

    def make(**kwargs):
        kwargs.setdefault("connection", connection)
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("observers", [observer])
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("now", clock.now)
        config = kwargs.pop("config", MonitorConfig(address=MOCK_ADDRESS))
        return SessionController(config, **kwargs)

    return make


@pytest.fixture
def metadata():
    return complete_metadata()


class GatedLoadCell(MockLoadCell):
    """Mock whose reads (and opens, with `hold_open`) block on `gate` while held."""

    def __init__(self, **config):
        super().__init__(**config)
        self.hold = False
        self.hold_open = False
        self.gate = asyncio.Event()

    async def open(self):
        if self.hold_open:
            await self.gate.wait()
        return await super().open()

    async def read_registers(self, address=0, count=2):
        if self.hold:
            await self.gate.wait()
        return await super().read_registers(address, count)


@pytest.fixture
def gated(state):
    """(GatedLoadCell, ConnectionManager) sharing the `state` fixture."""
    cell = GatedLoadCell(address=MOCK_ADDRESS)
    connection = ConnectionManager(
        state, address=MOCK_ADDRESS, device_factory=lambda address, **kw: cell
    )
    return cell, connection


class FakeRenderer:
    def __init__(self, transient_failures=0):
        self.transient_failures = transient_failures
        self.renders = []
        self.clears = 0

    def render(self, samples, peak):
        if self.transient_failures:
            self.transient_failures -= 1
            raise RenderTransient("canvas not mounted")
        self.renders.append((list(samples), peak))

    def clear(self):
        self.clears += 1


@pytest.fixture
def renderer():
    return FakeRenderer()
