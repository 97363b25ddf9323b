"""Lumen: signage media server and screen player core."""

__version__ = "0.1.0"
