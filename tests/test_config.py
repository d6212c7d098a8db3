from __future__ import annotations

import pytest

from scanroom.config import DEFAULT_SAVE_PATH, EditorSettings
from scanroom.core.errors import ScanroomInputError


def test_defaults() -> None:
    s = EditorSettings.from_env({})
    assert s.wall_thickness == pytest.approx(0.1)
    assert s.suggestion_cutoff_factor == pytest.approx(1.2)
    assert s.legacy_opposite_gap == pytest.approx(0.1)
    assert s.save_path == DEFAULT_SAVE_PATH
    assert s.compress_saves is True


def test_environment_overrides() -> None:
    s = EditorSettings.from_env(
        {
            "SCANROOM_WALL_THICKNESS": "0.2",
            "SCANROOM_LEGACY_OPPOSITE_GAP": "0",
            "SCANROOM_COMPRESS_SAVES": "off",
            "SCANROOM_SAVE_PATH": "/tmp/rooms.scanroom",
            "UNRELATED": "x",
        }
    )
    assert s.wall_thickness == pytest.approx(0.2)
    assert s.legacy_opposite_gap == 0.0
    assert s.compress_saves is False
    assert s.save_path == "/tmp/rooms.scanroom"


@pytest.mark.parametrize(
    "env, message",
    [
        ({"SCANROOM_WALL_MOVE_STEP": "fast"}, "expected a number"),
        ({"SCANROOM_COMPRESS_SAVES": "maybe"}, "expected a boolean"),
        ({"SCANROOM_WALL_THICKNESS": "-1"}, "wall_thickness must be >= 0"),
    ],
)
def test_invalid_values_are_rejected(env, message) -> None:
    with pytest.raises(ScanroomInputError, match=message):
        EditorSettings.from_env(env)
