"""
Versioned save files for the room editor.
"""

from scanroom.project.io import decode_save, encode_save, load_from, save_to

__all__ = ["decode_save", "encode_save", "load_from", "save_to"]
