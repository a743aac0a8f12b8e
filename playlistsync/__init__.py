"""
Playlist synchronization onto MTP music players.
"""
__version__ = "0.1.0"
