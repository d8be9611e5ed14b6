import asyncio

import pytest
from loguru import logger

from loadscope.session import CONNECT_RESULT, SESSION_STATE, SessionController
from loadscope.session.scheduler import AsyncioScheduler
from loadscope.system import MonitorConfig
from loadscope.types import (
    STATUS_LEVEL,
    ConcurrentOperation,
    ConfigurationIncomplete,
    ConnectionRequired,
    DeviceConnectionError,
    TestMetadata,
)


def _snapshot(controller):
    state = controller.state
    return (
        state.is_connected,
        state.is_polling,
        state.connect_in_progress,
        state.peak_value,
        len(state.samples),
        controller.poll_loop.generation,
    )


async def _poll(controller, device, scheduler, clock, *raw_values):
    device.queue(*raw_values)
    for _ in raw_values:
        await scheduler.run_next("poll")
        clock.advance(1.0)


class TestStart:
    @pytest.fixture(autouse=True)
    def log(self, request):
        logger.warning("STARTED Test '{}'".format(request.node.originalname))

        def fin():
            logger.warning("COMPLETED Test '{}' \n".format(request.node.originalname))

        request.addfinalizer(fin)

    @pytest.mark.asyncio
    async def test_start(self, make_controller, scheduler, observer):
        controller = make_controller()
        await controller.connect()
        await controller.start()
        assert controller.state.is_polling
        assert controller.session_state == SESSION_STATE.POLLING
        assert controller.controls.stop and not controller.controls.start
        assert observer.statuses[-1].text == "Connected. Polling..."
        assert len(scheduler.pending("poll")) == 1

    @pytest.mark.asyncio
    async def test_start_while_polling(self, make_controller, scheduler, observer):
        controller = make_controller()
        await controller.connect()
        await controller.start()
        before = _snapshot(controller)

        with pytest.raises(ConcurrentOperation):
            await controller.start()
        assert _snapshot(controller) == before
        assert len(scheduler.pending("poll")) == 1
        assert observer.statuses[-1].level == STATUS_LEVEL.ERROR

    @pytest.mark.asyncio
    async def test_start_while_disconnected(self, make_controller, scheduler, observer):
        controller = make_controller()
        before = _snapshot(controller)

        with pytest.raises(ConnectionRequired) as excinfo:
            await controller.start()
        assert isinstance(excinfo.value, DeviceConnectionError)
        assert _snapshot(controller) == before
        assert scheduler.pending() == []
        assert observer.statuses[-1].text == "Not connected."
        assert controller.controls.start and controller.controls.connect

    @pytest.mark.asyncio
    async def test_start_with_incomplete_metadata(self, make_controller, state, scheduler):
        state.metadata = TestMetadata()
        controller = make_controller()
        await controller.connect()
        before = _snapshot(controller)

        with pytest.raises(ConfigurationIncomplete) as excinfo:
            await controller.start()
        assert "equipment.equipment_name" in excinfo.value.missing_fields
        assert _snapshot(controller) == before
        assert controller.controls.start

    @pytest.mark.asyncio
    async def test_custom_configuration_check(self, make_controller):
        complete = False
        controller = make_controller(is_configuration_complete=lambda: complete)
        await controller.connect()
        with pytest.raises(ConfigurationIncomplete):
            await controller.start()
        complete = True
        await controller.start()
        assert controller.state.is_polling

    @pytest.mark.asyncio
    async def test_double_start(self, make_controller, gated, scheduler, observer):
        cell, connection = gated
        controller = make_controller(connection=connection)
        await controller.connect()

        cell.hold = True
        first = asyncio.create_task(controller.start())
        await asyncio.sleep(0)
        assert not controller.controls.start
        with pytest.raises(ConcurrentOperation):
            await controller.start()

        cell.gate.set()
        await first
        assert controller.state.is_polling
        assert len(scheduler.pending("poll")) == 1

    @pytest.mark.asyncio
    async def test_start_lock_released_on_failure(self, make_controller, device, state):
        controller = make_controller()
        await controller.connect()
        device.fail_reads = 1
        device.fail_open = True

        with pytest.raises(DeviceConnectionError):
            await controller.start()
        assert not controller._start_lock
        assert not state.is_polling
        assert not state.is_connected
        assert controller.controls.start and controller.controls.connect

        device.fail_open = False
        await controller.connect()
        await controller.start()
        assert state.is_polling


class TestStopAndConnect:
    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, make_controller, scheduler, observer):
        controller = make_controller()
        controller.stop()
        assert "Stopped" not in observer.status_texts()

        await controller.connect()
        await controller.start()
        controller.stop()
        controller.stop()
        assert observer.status_texts().count("Stopped") == 1
        assert scheduler.pending("poll") == []
        assert controller.session_state == SESSION_STATE.CONNECTED

    @pytest.mark.asyncio
    async def test_stop_redraws_chart(self, make_controller, device, scheduler, clock, renderer):
        controller = make_controller(renderer=renderer)
        await controller.connect()
        await controller.start()
        await _poll(controller, device, scheduler, clock, 1000, 2000)
        controller.stop()
        samples, peak = renderer.renders[-1]
        assert [s.load_tons for s in samples] == [10.0, 20.0]
        assert peak == 20.0
        assert controller.controls.download

    @pytest.mark.asyncio
    async def test_connect_failure(self, make_controller, device, observer):
        device.fail_open = True
        controller = make_controller()
        with pytest.raises(DeviceConnectionError):
            await controller.connect()
        assert observer.statuses[-1].text == "Connection failed"
        assert controller.controls.connect
        assert controller.session_state == SESSION_STATE.IDLE

    @pytest.mark.asyncio
    async def test_connect_twice(self, make_controller):
        controller = make_controller()
        assert await controller.connect() == CONNECT_RESULT.CONNECTED
        assert await controller.connect() == CONNECT_RESULT.ALREADY_CONNECTED

    @pytest.mark.asyncio
    async def test_switch_device_while_polling(self, make_controller):
        controller = make_controller()
        await controller.connect()
        await controller.start()
        with pytest.raises(ConcurrentOperation):
            await controller.connect("COM9")
        assert controller.state.is_polling

    @pytest.mark.asyncio
    async def test_disconnect_while_polling(self, make_controller, device, scheduler):
        controller = make_controller()
        await controller.connect()
        await controller.start()
        controller.disconnect()
        assert not controller.state.is_polling
        assert not controller.state.is_connected
        assert scheduler.pending() == []
        assert device.close_count == 1
        controller.disconnect()

    @pytest.mark.asyncio
    async def test_session_states(self, make_controller):
        controller = make_controller()
        assert controller.session_state == SESSION_STATE.IDLE
        await controller.connect()
        assert controller.session_state == SESSION_STATE.CONNECTED
        await controller.start()
        assert controller.session_state == SESSION_STATE.POLLING
        controller.stop()
        assert controller.session_state == SESSION_STATE.CONNECTED
        controller.disconnect()
        assert controller.session_state == SESSION_STATE.IDLE

    @pytest.mark.asyncio
    async def test_controls_pushed_on_change_only(self, make_controller, observer):
        controller = make_controller()
        await controller.connect()
        await controller.start()
        controller.stop()
        pushed = observer.controls
        assert pushed[0].connect and pushed[0].start and not pushed[0].stop
        assert all(a != b for a, b in zip(pushed, pushed[1:]))
        assert pushed[-1] == controller.controls

    @pytest.mark.asyncio
    async def test_broken_observer(self, make_controller, device, scheduler, clock):
        class Broken:
            def __getattr__(self, name):
                def hook(*args):
                    raise RuntimeError(name)

                return hook

        controller = make_controller()
        controller.add_observer(Broken())
        await controller.connect()
        await controller.start()
        await _poll(controller, device, scheduler, clock, 1000)
        assert len(controller.get_current_buffer()) == 1

    @pytest.mark.asyncio
    async def test_aclose_lets_running_cycle_finish(self, make_controller, gated, state):
        cell, connection = gated
        scheduler = AsyncioScheduler()
        controller = make_controller(connection=connection, scheduler=scheduler)
        await controller.connect()
        await controller.start()

        cell.hold = True
        await asyncio.sleep(0.02)
        assert scheduler._running
        closing = asyncio.create_task(controller.aclose())
        await asyncio.sleep(0.01)
        assert not closing.done()
        assert cell.is_connected()

        cell.gate.set()
        await closing
        assert cell.read_count == 2
        assert not state.is_polling
        assert not state.is_connected
        assert scheduler.pending == []

    def test_defaults(self):
        controller = SessionController()
        assert controller.config == MonitorConfig()
        assert controller.connection.address == "127.0.0.1:8502"
        assert controller.session_state == SESSION_STATE.IDLE
        assert controller.get_peak() == 0.0
        assert not controller.reset()


class TestResetAndClear:
    @pytest.mark.asyncio
    async def test_reset(self, make_controller, device, scheduler, clock, observer, renderer):
        config = MonitorConfig(address="mock", default_location="Bay 3")
        controller = make_controller(
            config=config, confirm=lambda msg: True, renderer=renderer
        )
        calibration = controller.state.metadata.calibration.to_dict()
        await controller.connect()
        await controller.start()
        await _poll(controller, device, scheduler, clock, 1000, 2000)

        assert controller.reset()

        state = controller.state
        assert state.samples == []
        assert state.peak_value == 0.0
        assert not state.is_polling
        assert not state.is_connected
        assert state.metadata.calibration.to_dict() == calibration
        assert state.metadata.equipment.test_date == "14/03/2025"
        assert state.metadata.equipment.location == "Bay 3"
        assert state.metadata.equipment.equipment_name == ""
        assert observer.clears == 1
        assert observer.metadata[-1] is state.metadata
        assert renderer.clears == 1
        assert controller.session_state == SESSION_STATE.IDLE
        assert controller.controls.connect

    @pytest.mark.asyncio
    async def test_reset_needs_confirmation(self, make_controller, device, scheduler, clock):
        prompts = []

        def deny(message):
            prompts.append(message)
            return False

        controller = make_controller(confirm=deny)
        await controller.connect()
        await controller.start()
        await _poll(controller, device, scheduler, clock, 1000)

        assert not controller.request_full_reset()
        assert len(prompts) == 1
        assert controller.state.is_polling
        assert len(controller.get_current_buffer()) == 1

    @pytest.mark.asyncio
    async def test_reset_during_start(self, make_controller, gated, scheduler, state):
        cell, connection = gated
        controller = make_controller(connection=connection, confirm=lambda msg: True)
        await controller.connect()

        cell.hold = True
        starting = asyncio.create_task(controller.start())
        await asyncio.sleep(0)
        assert controller.reset()

        cell.gate.set()
        await starting
        assert not state.is_polling
        assert not state.is_connected
        assert not state.connect_in_progress
        assert scheduler.pending("poll") == []
        assert cell.open_count == 1
        assert connection.device is None
        assert controller.session_state == SESSION_STATE.IDLE
        assert controller.controls.start and controller.controls.connect

    @pytest.mark.asyncio
    async def test_reset_during_connect(self, make_controller, gated, state, observer):
        cell, connection = gated
        controller = make_controller(connection=connection, confirm=lambda msg: True)

        cell.hold_open = True
        connecting = asyncio.create_task(controller.connect())
        await asyncio.sleep(0)
        assert controller.reset()
        # the first connect still owns the transport until it returns
        assert not controller.controls.connect
        assert await connection.connect() == CONNECT_RESULT.BUSY

        cell.gate.set()
        assert await connecting == CONNECT_RESULT.CANCELLED
        assert not state.is_connected
        assert not state.connect_in_progress
        assert not cell.is_connected()
        assert connection.device is None
        assert observer.statuses[-1].text == "Connection cancelled."
        assert controller.session_state == SESSION_STATE.IDLE
        assert controller.controls.connect

        await controller.connect()
        assert state.is_connected

    def test_clear_without_data(self, make_controller, observer):
        controller = make_controller(confirm=lambda msg: True)
        assert not controller.request_clear()
        assert observer.statuses[-1].text == "No data to clear."
        assert observer.statuses[-1].level == STATUS_LEVEL.WARNING

    @pytest.mark.asyncio
    async def test_clear(self, make_controller, device, scheduler, clock, observer):
        controller = make_controller(confirm=lambda msg: True)
        calibration = controller.state.metadata.calibration.to_dict()
        await controller.connect()
        await controller.start()
        await _poll(controller, device, scheduler, clock, 1000)

        assert controller.clear()

        state = controller.state
        assert state.samples == []
        assert state.peak_value == 0.0
        assert not state.is_connected
        assert state.metadata.calibration.to_dict() == calibration
        assert state.metadata.equipment.missing_fields() == list(
            state.metadata.equipment.to_dict()
        )
        assert controller.controls.connect
        assert scheduler.pending() == []


class TestAccessors:
    @pytest.mark.asyncio
    async def test_table_rows(self, make_controller, device, scheduler, clock):
        controller = make_controller()
        await controller.connect()
        await controller.start()
        await _poll(controller, device, scheduler, clock, 500000, 100)
        assert controller.table_rows() == [
            ["09:30:00", "5000.000 t", "49033.25 kN"],
            ["09:30:01", "1.000 t", "9.81 kN"],
        ]

    @pytest.mark.asyncio
    async def test_buffer_is_a_copy(self, make_controller, device, scheduler, clock):
        controller = make_controller()
        await controller.connect()
        await controller.start()
        await _poll(controller, device, scheduler, clock, 1000)
        buffer = controller.get_current_buffer()
        buffer.clear()
        assert len(controller.get_current_buffer()) == 1

    def test_is_configuration_complete(self, make_controller, state):
        controller = make_controller()
        assert controller.is_configuration_complete()
        state.metadata.equipment.tested_by = " "
        assert not controller.is_configuration_complete()
