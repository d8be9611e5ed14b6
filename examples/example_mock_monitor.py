import asyncio

import loadscope.types
import loadscope.util
from loadscope.session import SessionController, SessionObserver
from loadscope.system import MonitorConfig
from loadscope.types import CalibrationData, EquipmentData, TestMetadata

# Set how long to poll for (seconds)
DURATION = 15


class PrintObserver(SessionObserver):
    def on_sample_retained(self, sample, peak):
        print(f"{sample.timestamp}  {sample.load_tons:8.3f} t  (peak {peak:.3f} t)")

    def on_status(self, status):
        print(f"[{status.level}] {status.text}")


loadscope.util.start_log(log_to_stdout=False, log_level="DEBUG")  # ~/.loadscope/loadscope.log

# Calibration and equipment data would normally come from the forms
metadata = TestMetadata(
    calibration=CalibrationData(
        load_cell_part_no="DLC-6",
        load_cell_serial_no="LC-0042",
        load_cell_model_no="DLC-6-100T",
        load_cell_last_calibration_date="02/01/2025",
        load_cell_calibration_validity="02/01/2026",
        display_part_no="DSP-2",
        display_model_no="DSP-2A",
        display_serial_no="D-1177",
        display_last_calibration_date="02/01/2025",
        display_calibration_validity="02/01/2026",
    ),
    equipment=EquipmentData(
        equipment_name="Overhead crane 7",
        type_of_equipment="EOT crane",
        equipment_part_no="OC-7",
        equipment_model_no="EOT-50",
        equipment_serial_no="S-20931",
        rated_load_capacity="50",
        proof_load_percentage="125",
        year_of_manufacture="2012",
        test_date=loadscope.types.today_string(),
        location="Bay 3",
        tested_by="A. Tester",
        certified_by="C. Engineer",
    ),
)


async def main():
    # "mock:<seed>" polls an in-process simulated lift,
    # use e.g. "COM4" or "127.0.0.1:8502" (`loadscope simulate`) otherwise
    controller = SessionController(
        MonitorConfig(address="mock:1"), observers=[PrintObserver()]
    )
    controller.state.metadata = metadata
    await controller.connect()
    await controller.start()
    await asyncio.sleep(DURATION)
    controller.stop()

    print(f"Proof load: {metadata.equipment.proof_load} t")
    print(f"Peak: {controller.get_peak():.3f} t over {len(controller.get_current_buffer())} samples")
    path = loadscope.util.save_session(
        controller.get_current_buffer(),
        controller.get_peak(),
        "~/loadscope_data",
        project_name="crane-7",
        metadata=metadata,
    )
    print(f"Saved to {path}")
    await controller.aclose()


asyncio.run(main())
