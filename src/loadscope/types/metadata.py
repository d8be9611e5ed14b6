"""Calibration and equipment metadata attached to a load test.

The forms that fill these records live outside loadscope; the session core
only needs to know whether they are complete, and how to reset the
equipment half between tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date

from mashumaro import DataClassDictMixin

DATE_FORMAT = "%d/%m/%Y"


def today_string(today: date | None = None) -> str:
    return (today or date.today()).strftime(DATE_FORMAT)


class _Record:
    def missing_fields(self) -> list[str]:
        return [f.name for f in fields(self) if not str(getattr(self, f.name)).strip()]

    def is_complete(self) -> bool:
        return not self.missing_fields()


@dataclass
class CalibrationData(_Record, DataClassDictMixin):
    """Master calibration equipment: the load cell and its display."""

    load_cell_part_no: str = ""
    load_cell_serial_no: str = ""
    load_cell_model_no: str = ""
    load_cell_last_calibration_date: str = ""
    load_cell_calibration_validity: str = ""
    display_part_no: str = ""
    display_model_no: str = ""
    display_serial_no: str = ""
    display_last_calibration_date: str = ""
    display_calibration_validity: str = ""


@dataclass
class EquipmentData(_Record, DataClassDictMixin):
    """The equipment under test."""

    equipment_name: str = ""
    type_of_equipment: str = ""
    equipment_part_no: str = ""
    equipment_model_no: str = ""
    equipment_serial_no: str = ""
    rated_load_capacity: str = ""  # tons
    proof_load_percentage: str = ""
    year_of_manufacture: str = ""
    test_date: str = ""
    location: str = ""
    tested_by: str = ""
    certified_by: str = ""

    @property
    def proof_load(self) -> float | None:
        """Proof load in tons, or None if capacity/percentage are not valid."""
        try:
            capacity = float(self.rated_load_capacity)
            percentage = float(self.proof_load_percentage)
        except ValueError:
            return None
        if capacity <= 0 or percentage <= 0:
            return None
        return capacity * (percentage / 100)


@dataclass
class TestMetadata(DataClassDictMixin):
    __test__ = False  # not a pytest class

    calibration: CalibrationData = field(default_factory=CalibrationData)
    equipment: EquipmentData = field(default_factory=EquipmentData)

    def missing_fields(self) -> list[str]:
        return [f"calibration.{name}" for name in self.calibration.missing_fields()] + [
            f"equipment.{name}" for name in self.equipment.missing_fields()
        ]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def reset_equipment(self, test_date: str = "", location: str = "") -> None:
        """Keep calibration, start a fresh equipment record with defaults."""
        self.equipment = EquipmentData(test_date=test_date, location=location)

    def clear_equipment(self) -> None:
        self.equipment = EquipmentData()
