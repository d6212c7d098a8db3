from __future__ import annotations


class ScanroomInputError(ValueError):
    """Bad user input: malformed files, wrong selection counts, unknown IDs."""


class GeometryDegeneracyError(ArithmeticError):
    """A geometric construction has no unique solution (e.g. parallel planes)."""


class SingularSystemError(GeometryDegeneracyError):
    pass


class SaveFormatError(ValueError):
    """A save file could not be read under any known shape."""


class InvariantViolation(RuntimeError):
    """Internal consistency broken; indicates an ID-allocation or ownership bug."""
