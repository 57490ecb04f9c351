"""
Library module for chart-finder.

This module covers what the user already has and what the user listens to.

Components:
    - models: Track and InstalledEntry dataclasses
    - scanner: scan_library() over a Songs directory of song.ini folders
    - history: streaming history dump and track list loaders

Usage:
    from chart_finder.library import scan_library, load_streaming_history
"""

from chart_finder.library.history import load_streaming_history, load_track_list
from chart_finder.library.models import InstalledEntry, Track
from chart_finder.library.scanner import read_song_ini, scan_library

__all__ = [
    "Track",
    "InstalledEntry",
    "scan_library",
    "read_song_ini",
    "load_streaming_history",
    "load_track_list",
]
