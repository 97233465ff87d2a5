"""Per-user TV watch-progress tracking backed by TMDB and a local document store."""

__version__ = "0.1.0"
