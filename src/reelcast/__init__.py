"""
Reelcast - turns search-term playlists into per-display video timelines and
serves them to unattended displays over a polling protocol.
"""

__version__ = "0.1.0"
