from __future__ import annotations

import argparse
import logging
from pathlib import Path

from scanroom.config import EditorSettings
from scanroom.core.errors import GeometryDegeneracyError, SaveFormatError, ScanroomInputError
from scanroom.io.export import export_all_room_xf_files, pcl_transform_commands, room_projection_to_string
from scanroom.ops import (
    OpContext,
    connect_walls,
    fit_cuboid_to_room,
    load_room,
    move_wall,
    optimize_room_positions,
    suggest_corners,
)
from scanroom.project.io import load_from, save_to
from scanroom.scene.store import SceneStore
from scanroom.scene.walls import Opposite, Same

log = logging.getLogger(__name__)

_CLI = OpContext(user="cli", source="cli")


def _load(path: str, settings: EditorSettings) -> SceneStore:
    store = SceneStore()
    load_from(store, Path(path).expanduser(), opposite_gap=settings.legacy_opposite_gap)
    return store


def _cmd_info(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    print(f"{len(store.rooms)} rooms, {len(store.walls)} wall connections")
    for rid in sorted(store.rooms):
        r = store.rooms[rid]
        print(f"Room: {rid} ({r.name})")
        print(f"  planes: {', '.join(str(p.id) for p in r.planes) or '-'}")
        print(f"  points: {len(r.cloud.points)}")
        print(f"  corners: {len(r.corners)} accepted, {len(r.suggested_corners)} suggested")
    for e in store.walls.edges:
        print(f"Wall {e.plane_id_1} <-> {e.plane_id_2} along {e.axis.value}: {e.relation}")
    return 0


def _cmd_optimize(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    report = optimize_room_positions(store, ctx=_CLI)
    for c in report.components:
        rooms = ", ".join(str(i) for i in c.room_ids)
        if c.ok:
            print(f"{c.axis.value}: rooms {rooms} aligned, RMSE {c.rmse:.4f}")
        else:
            print(f"{c.axis.value}: rooms {rooms} NOT aligned: {c.error}")
    _save_back(store, args, settings)
    return 3 if report.failed else 0


def _cmd_export_xf(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    for path in export_all_room_xf_files(store, Path(args.outdir).expanduser()):
        print(path)
    return 0


def _cmd_pcl_commands(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    for line in pcl_transform_commands(store, tool=args.tool):
        print(line)
    return 0


def _cmd_projection(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    print(room_projection_to_string(store.require_room(args.room_id)))
    return 0


def _cmd_import_room(args: argparse.Namespace, settings: EditorSettings) -> int:
    save_path = Path(args.save or settings.save_path).expanduser()
    store = _load(str(save_path), settings) if save_path.exists() else SceneStore()
    room = load_room(store, Path(args.dir).expanduser(), kinfu=args.kinfu, ctx=_CLI)
    save_to(store, save_path, compress=settings.compress_saves)
    print(f"Room {room.id} loaded with {len(room.planes)} planes; saved to {save_path}")
    return 0


def _save_back(store: SceneStore, args: argparse.Namespace, settings: EditorSettings) -> None:
    out = Path(args.out or args.save).expanduser()
    save_to(store, out, compress=settings.compress_saves)
    print(f"Saved: {out}")


def _cmd_suggest_corners(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    found = suggest_corners(store, args.room_id, cutoff_factor=settings.suggestion_cutoff_factor, ctx=_CLI)
    state = "accepted" if found.auto_accepted else "suggested"
    print(f"{len(found.corners)} of {found.candidates} plane triples {state} as corners")
    for cid, p in found.corners:
        print(f"  {cid}: {p[0]:.4f} {p[1]:.4f} {p[2]:.4f}")
    _save_back(store, args, settings)
    return 0


def _cmd_fit_cuboid(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    fit = fit_cuboid_to_room(store, args.room_id, ctx=_CLI)
    size = " x ".join(f"{2 * h:.3f}" for h in fit.half_extents)
    print(f"Room {args.room_id}: cuboid {size}, RMSE {fit.rmse:.4f}")
    _save_back(store, args, settings)
    return 0


def _cmd_connect(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    if args.opposite:
        gap = settings.wall_thickness if args.gap is None else args.gap
        relation = Opposite(gap)
    else:
        relation = Same()
    if not connect_walls(store, args.plane_1, args.plane_2, relation, ctx=_CLI):
        print(f"Walls {args.plane_1} and {args.plane_2} are already connected")
    _save_back(store, args, settings)
    return 0


def _cmd_move_wall(args: argparse.Namespace, settings: EditorSettings) -> int:
    store = _load(args.save, settings)
    moved = move_wall(store, args.plane_id, args.direction, step=args.steps * settings.wall_move_step, ctx=_CLI)
    print(f"Plane {moved.id}: offset {moved.eq.offset:.4f}")
    _save_back(store, args, settings)
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="scanroom")
    p.add_argument("-v", "--verbose", action="count", default=0, help="More log output (-vv for debug)")
    sub = p.add_subparsers(dest="cmd", required=True)

    info = sub.add_parser("info", help="List the rooms and wall connections of a save file.")
    info.add_argument("save", help="Save file")
    info.set_defaults(func=_cmd_info)

    opt = sub.add_parser("optimize", help="Align rooms along their connected walls.")
    opt.add_argument("save", help="Save file")
    opt.add_argument("-o", "--out", default=None, help="Output save file (default: overwrite input)")
    opt.set_defaults(func=_cmd_optimize)

    xf = sub.add_parser("export-xf", help="Write one .xf transform file per room.")
    xf.add_argument("save", help="Save file")
    xf.add_argument("outdir", help="Output directory")
    xf.set_defaults(func=_cmd_export_xf)

    pcl = sub.add_parser("pcl-commands", help="Print pcl_transform_point_cloud command lines for all rooms.")
    pcl.add_argument("save", help="Save file")
    pcl.add_argument("--tool", default="pcl_transform_point_cloud", help="Transform tool executable")
    pcl.set_defaults(func=_cmd_pcl_commands)

    proj = sub.add_parser("projection", help="Print a room's transform as 16 comma-separated values.")
    proj.add_argument("save", help="Save file")
    proj.add_argument("room_id", type=int, help="Room ID as listed by `info`")
    proj.set_defaults(func=_cmd_projection)

    imp = sub.add_parser("import-room", help="Load a segmented room scan directory into a save file.")
    imp.add_argument("dir", help="Directory with cloud_downsampled.pcd, planes.txt and hull files")
    imp.add_argument("--save", default=None, help="Save file, created if missing (default: $SCANROOM_SAVE_PATH or save.scanroom)")
    imp.add_argument("--kinfu", action="store_true", help="Turn the room upright (KinFu captures are upside down)")
    imp.set_defaults(func=_cmd_import_room)

    sug = sub.add_parser("suggest-corners", help="Suggest room corners from plane intersections.")
    sug.add_argument("save", help="Save file")
    sug.add_argument("room_id", type=int, help="Room ID as listed by `info`")
    sug.add_argument("-o", "--out", default=None, help="Output save file (default: overwrite input)")
    sug.set_defaults(func=_cmd_suggest_corners)

    cub = sub.add_parser("fit-cuboid", help="Replace a room's walls by the cuboid through its 8 corners.")
    cub.add_argument("save", help="Save file")
    cub.add_argument("room_id", type=int, help="Room ID as listed by `info`")
    cub.add_argument("-o", "--out", default=None, help="Output save file (default: overwrite input)")
    cub.set_defaults(func=_cmd_fit_cuboid)

    con = sub.add_parser("connect", help="Connect two walls of different rooms.")
    con.add_argument("save", help="Save file")
    con.add_argument("plane_1", type=int)
    con.add_argument("plane_2", type=int)
    con.add_argument("--opposite", action="store_true", help="The walls are the two faces of one wall")
    con.add_argument("--gap", type=float, default=None, help="Wall thickness for --opposite (default: $SCANROOM_WALL_THICKNESS or 0.1)")
    con.add_argument("-o", "--out", default=None, help="Output save file (default: overwrite input)")
    con.set_defaults(func=_cmd_connect)

    mw = sub.add_parser("move-wall", help="Shift a wall along a direction in steps of $SCANROOM_WALL_MOVE_STEP.")
    mw.add_argument("save", help="Save file")
    mw.add_argument("plane_id", type=int)
    mw.add_argument("direction", type=float, nargs=3, metavar=("DX", "DY", "DZ"))
    mw.add_argument("--steps", type=float, default=1.0, help="Number of steps (default: 1)")
    mw.add_argument("-o", "--out", default=None, help="Output save file (default: overwrite input)")
    mw.set_defaults(func=_cmd_move_wall)

    args = p.parse_args(argv)
    level = logging.WARNING if args.verbose == 0 else logging.INFO if args.verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = EditorSettings.from_env()
        return int(args.func(args, settings))
    except (ScanroomInputError, SaveFormatError, GeometryDegeneracyError) as exc:
        print(f"[ERROR] {exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
