"""Live face detection and gallery matching on camera frames."""

from facewatch.errors import CaptureError, FacewatchError, GalleryError, ModelLoadError, SettingsError

__all__ = [
    "CaptureError",
    "FacewatchError",
    "GalleryError",
    "ModelLoadError",
    "SettingsError",
]
