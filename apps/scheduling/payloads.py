"""
Typed change request payloads.

ChangeRequest.payload_after is stored as JSON; these classes are the only
way it is read or written. Each change type has its own shape:

  add     → AddShiftPayload     every required shift field
  edit    → EditShiftPayload    the changed fields only (at least one)
  delete  → DeleteShiftPayload  nothing

Unknown fields are rejected with ShiftValidationError.
"""

import datetime
from dataclasses import dataclass, field
from typing import Optional, Union

from apps.scheduling.exceptions import ShiftValidationError
from apps.scheduling.services import clean_shift_data


def to_json(values: dict) -> dict:
    """Render cleaned shift values as JSON-safe primitives."""
    rendered = {}
    for name, value in values.items():
        if isinstance(value, datetime.date):
            rendered[name] = value.isoformat()
        elif isinstance(value, datetime.time):
            rendered[name] = value.strftime("%H:%M:%S")
        else:
            rendered[name] = value
    return rendered


@dataclass
class AddShiftPayload:
    shift_date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    role: str
    required_count: int = 1
    is_open_shift: bool = False
    close_duty: bool = False
    notes: str = ""
    breaks: list = field(default_factory=list)
    break_duration_minutes: Optional[int] = None

    change_type = "add"

    @classmethod
    def from_dict(cls, data) -> "AddShiftPayload":
        if not isinstance(data, dict):
            raise ShiftValidationError("An add request needs the new shift's fields.", field="payload_after")
        return cls(**clean_shift_data(data))

    def values(self) -> dict:
        return {
            "shift_date": self.shift_date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "role": self.role,
            "required_count": self.required_count,
            "is_open_shift": self.is_open_shift,
            "close_duty": self.close_duty,
            "notes": self.notes,
            "breaks": list(self.breaks),
            "break_duration_minutes": self.break_duration_minutes,
        }

    def as_json(self) -> dict:
        return to_json(self.values())


@dataclass
class EditShiftPayload:
    changes: dict

    change_type = "edit"

    @classmethod
    def from_dict(cls, data) -> "EditShiftPayload":
        if not isinstance(data, dict) or not data:
            raise ShiftValidationError("An edit request must change at least one field.", field="payload_after")
        return cls(changes=clean_shift_data(data, partial=True))

    def values(self) -> dict:
        return dict(self.changes)

    def as_json(self) -> dict:
        return to_json(self.changes)


@dataclass
class DeleteShiftPayload:
    change_type = "delete"

    @classmethod
    def from_dict(cls, data) -> "DeleteShiftPayload":
        if data:
            raise ShiftValidationError("A delete request carries no new values.", field="payload_after")
        return cls()

    def values(self) -> dict:
        return {}

    def as_json(self) -> Optional[dict]:
        return None


ShiftPayload = Union[AddShiftPayload, EditShiftPayload, DeleteShiftPayload]

PAYLOAD_TYPES = {
    "add": AddShiftPayload,
    "edit": EditShiftPayload,
    "delete": DeleteShiftPayload,
}


def parse_payload(change_type: str, data) -> ShiftPayload:
    """
    Parse payload_after for the given change type.

    Raises:
        ShiftValidationError: Unknown change type or malformed payload.
    """
    try:
        payload_cls = PAYLOAD_TYPES[change_type]
    except KeyError:
        raise ShiftValidationError(f"Unknown change type '{change_type}'.", field="change_type")
    return payload_cls.from_dict(data)
