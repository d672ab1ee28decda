"""
Shared types and enums for Reelcast.

This module contains common types and enums that are used across
the domain, runtime, API, CLI, and other layers.
"""

from __future__ import annotations

from enum import Enum


class EntryStatus(str, Enum):
    """Lifecycle of a single timeline entry."""

    QUEUED = "queued"
    PLAYED = "played"
    SKIPPED = "skipped"


class FetchMode(str, Enum):
    """How a block asks the content resolver to order candidates."""

    NEWEST = "newest"
    RANDOM = "random"


class VideoFormat(str, Enum):
    """Orientation filter applied to a block's videos."""

    MIXED = "mixed"
    WIDE = "wide"
    TALL = "tall"


class PlaybackState(str, Enum):
    """Server-side playback state of a display."""

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


class CommandType(str, Enum):
    """Out-of-band instructions a display honours on its next poll."""

    PLAY = "play"
    PAUSE = "pause"
    NEXT = "next"
    PREVIOUS = "previous"
    SEEK = "seek"
    PLAY_VIDEO = "playVideo"
    MUTE = "mute"
    UNMUTE = "unmute"


class LoopOutcome(str, Enum):
    """Result of an attempt to restart an exhausted timeline."""

    NO_PLAYLIST = "no_playlist"
    NOT_EXHAUSTED = "not_exhausted"
    NO_RESTART = "no_restart"
    IN_PROGRESS = "in_progress"
    RESTARTED = "restarted"
    NO_CONTENT = "no_content"


class TimelineState(str, Enum):
    """Coarse state of a display's timeline, derived from rows and cursor."""

    UNASSIGNED = "unassigned"
    POPULATING = "populating"
    SERVING = "serving"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"
    LOOPING = "looping"
