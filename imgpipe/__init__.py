"""Batch image optimization and upload pipeline."""

__version__ = "1.0.0"
