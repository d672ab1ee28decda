"""
Domain layer - persistent entities of the display timeline scheduler.

This layer contains the core records (Display, Playlist, Block,
TimelineEntry, DisplayCommand, PlayHistory), independent of the HTTP
and CLI surfaces.
"""
