"""Exception types for the conditions that stop the program at startup.

Per-item problems (an unreadable gallery image, one failed comparison) are logged
and skipped where they happen and never surface as these.
"""


class FacewatchError(Exception):
    """Base class for fatal facewatch errors."""


class SettingsError(FacewatchError):
    """settings.conf is missing, empty or malformed."""


class GalleryError(FacewatchError):
    """The gallery directory cannot be listed."""


class ModelLoadError(FacewatchError):
    """A cascade model file could not be loaded."""


class CaptureError(FacewatchError):
    """The video source could not be opened."""
