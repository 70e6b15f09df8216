"""Bulk reference-image transformation packs on a generative image backend."""

__version__ = "1.0.0"
