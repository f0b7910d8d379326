"""Device link and command protocol layer for Meshtastic mesh nodes."""

__version__ = "0.1.0"
