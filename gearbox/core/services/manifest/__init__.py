"""Manifest tracking."""

from gearbox.core.services.manifest.tracker import ManifestTracker, TrackingConfig

__all__ = ["ManifestTracker", "TrackingConfig"]
