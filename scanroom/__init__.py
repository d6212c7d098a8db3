"""
scanroom: geometric modeling and multi-room registration for 3D scans.
"""

__version__ = "0.3.0"
