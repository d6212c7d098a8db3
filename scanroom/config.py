"""Editor defaults, overridable from ``SCANROOM_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from scanroom.core.errors import ScanroomInputError

DEFAULT_WALL_THICKNESS = 0.1
DEFAULT_SUGGESTION_CUTOFF_FACTOR = 1.2
DEFAULT_WALL_MOVE_STEP = 0.01
DEFAULT_SAVE_PATH = "save.scanroom"

ENV_PREFIX = "SCANROOM_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EditorSettings:
    wall_thickness: float = DEFAULT_WALL_THICKNESS
    suggestion_cutoff_factor: float = DEFAULT_SUGGESTION_CUTOFF_FACTOR
    wall_move_step: float = DEFAULT_WALL_MOVE_STEP
    # Gap given to "opposite" wall connections from saves that did not store one.
    legacy_opposite_gap: float = DEFAULT_WALL_THICKNESS
    save_path: str = DEFAULT_SAVE_PATH
    compress_saves: bool = True

    def __post_init__(self) -> None:
        for name in ("wall_thickness", "suggestion_cutoff_factor", "wall_move_step", "legacy_opposite_gap"):
            if float(getattr(self, name)) < 0.0:
                raise ScanroomInputError(f"{name} must be >= 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EditorSettings":
        env = os.environ if environ is None else environ
        base = cls()
        overrides = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = _parse(f.name, raw, getattr(base, f.name))
        return replace(base, **overrides)


def _parse(name: str, raw: str, default):
    if isinstance(default, bool):
        v = raw.strip().lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
        raise ScanroomInputError(f"{ENV_PREFIX}{name.upper()}: expected a boolean, got {raw!r}")
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError as exc:
            raise ScanroomInputError(f"{ENV_PREFIX}{name.upper()}: expected a number, got {raw!r}") from exc
    return raw
