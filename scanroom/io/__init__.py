"""
Point cloud and plane file import, transform export.
"""

from scanroom.io.export import (
    export_all_room_xf_files,
    pcl_transform_commands,
    room_projection_to_string,
    room_projection_to_xf,
)
from scanroom.io.pcd import PcdReader, cloud_from_file
from scanroom.io.plane_import import parse_plane_eqs, plane_eqs_from_file, planes_from_dir

__all__ = [
    "PcdReader",
    "cloud_from_file",
    "export_all_room_xf_files",
    "parse_plane_eqs",
    "pcl_transform_commands",
    "plane_eqs_from_file",
    "planes_from_dir",
    "room_projection_to_string",
    "room_projection_to_xf",
]
