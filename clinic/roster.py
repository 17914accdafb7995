"""
Roster configuration: the doctors, patients and open slots a registry starts with.

Handles:
- Validating roster files (fees, ages, unique ids)
- Saving rosters to JSON files
- Loading rosters by name
"""
import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinic.models import Specialty


class DoctorConfig(BaseModel):
    """A doctor entry in the roster."""
    id: str = Field(..., min_length=1, description="Unique doctor ID (e.g., D001)")
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    specialty: Specialty = Field(..., description="Medical department")
    fee: Decimal = Field(
        ..., ge=0, allow_inf_nan=False, description="Consultation fee (0 or positive)"
    )
    slots: List[datetime] = Field(default_factory=list, description="Open slots")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "D001",
                "name": "Ayse Demir",
                "specialty": "CARDIOLOGY",
                "fee": 350.0,
                "slots": ["2025-01-15T09:00:00", "2025-01-15T10:00:00"]
            }
        }
    )

    @field_validator('slots')
    @classmethod
    def validate_naive_slots(cls, v):
        for slot in v:
            if slot.utcoffset() is not None:
                raise ValueError(f"Slot {slot.isoformat()} must not carry a timezone")
        return v


class PatientConfig(BaseModel):
    """A patient entry in the roster."""
    id: str = Field(..., min_length=1, description="Unique patient ID (e.g., P001)")
    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., gt=0, le=150)
    phone: str = Field(default="")
    blood_type: str = Field(default="")


class ClinicRoster(BaseModel):
    """Complete roster for one clinic."""
    clinic_name: Optional[str] = Field(None, max_length=200)
    doctors: List[DoctorConfig] = Field(default_factory=list)
    patients: List[PatientConfig] = Field(default_factory=list)

    @field_validator('doctors')
    @classmethod
    def validate_unique_doctor_ids(cls, v):
        ids = [d.id for d in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Doctor ids must be unique")
        return v

    @field_validator('patients')
    @classmethod
    def validate_unique_patient_ids(cls, v):
        ids = [p.id for p in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Patient ids must be unique")
        return v


def load_roster(path: Union[str, Path]) -> ClinicRoster:
    """
    Load and validate a roster file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        pydantic.ValidationError: If the content is invalid
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return ClinicRoster(**data)


class RosterManager:
    """Manages roster files in a directory, one JSON file per roster name."""

    def __init__(self, roster_dir: Optional[str] = None):
        """
        Args:
            roster_dir: Directory for roster files.
                        Defaults to 'data/rosters' in project root.
        """
        if roster_dir is None:
            project_root = Path(__file__).parent.parent
            roster_dir = project_root / "data" / "rosters"

        self.roster_dir = Path(roster_dir)
        self.roster_dir.mkdir(parents=True, exist_ok=True)

    def _get_roster_path(self, name: str) -> Path:
        # Sanitize name to prevent path traversal
        safe_name = name.replace("/", "_").replace("\\", "_")
        return self.roster_dir / f"{safe_name}.json"

    def save_roster(self, name: str, roster: ClinicRoster) -> Path:
        path = self._get_roster_path(name)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(
                roster.model_dump(mode='json'),
                f,
                indent=2,
                ensure_ascii=False
            )
        return path

    def load_roster(self, name: str) -> ClinicRoster:
        """
        Raises:
            FileNotFoundError: If no roster with that name exists
        """
        path = self._get_roster_path(name)
        if not path.exists():
            raise FileNotFoundError(f"Roster not found: {name}")
        return load_roster(path)

    def list_rosters(self) -> List[str]:
        return sorted(p.stem for p in self.roster_dir.glob("*.json"))
