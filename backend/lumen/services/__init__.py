"""Lumen services — asset storage, backend sync, caching and playback."""
