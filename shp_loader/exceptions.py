"""
exceptions.py - Error types raised while loading a shapefile.

All errors derive from ShapefileLoaderError and carry the exit code the CLI
should return, so callers can catch broadly or narrowly.
"""

from shp_loader import config


class ShapefileLoaderError(Exception):
    """Base exception for all loader errors."""

    exit_code = 1

    def __init__(self, message, exit_code=None, step=None):
        super().__init__(message)
        self.step = step
        if exit_code is not None:
            self.exit_code = exit_code


class UsageError(ShapefileLoaderError):
    """Raised when command-line input is malformed or incomplete."""

    exit_code = config.EXIT_USAGE


class LoaderEnvironmentError(ShapefileLoaderError):
    """Raised when the database or an external tool is unavailable."""


class DataError(ShapefileLoaderError):
    """Raised when the conversion utility rejects the shapefile or projections."""
