"""VidTube — video hosting backend.

Users register, log in with rotating JWT sessions, publish and browse
videos, and keep a watch history. Media files live on an external host.
"""

__version__ = "0.1.0"
