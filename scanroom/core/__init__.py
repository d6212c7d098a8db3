from scanroom.core.errors import (
    GeometryDegeneracyError,
    InvariantViolation,
    SaveFormatError,
    ScanroomInputError,
    SingularSystemError,
)
from scanroom.core.ids import FIRST_ID, NO_ID, UNASSIGNED_ID, IdAllocator

__all__ = [
    "FIRST_ID",
    "NO_ID",
    "UNASSIGNED_ID",
    "IdAllocator",
    "GeometryDegeneracyError",
    "InvariantViolation",
    "SaveFormatError",
    "ScanroomInputError",
    "SingularSystemError",
]
