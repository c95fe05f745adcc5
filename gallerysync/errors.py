"""Exception types raised across the sync engine."""


class GallerySyncError(Exception):
    """Base class for all sync engine errors."""


class ResolutionError(GallerySyncError):
    """A gallery could not be fetched or its response could not be parsed."""


class AuthenticationUnavailable(GallerySyncError):
    """No usable (present and unexpired) Adobe credentials."""


class ManifestError(GallerySyncError):
    """The manifest file could not be read or written. Fatal for a run."""


class GalleryConfigError(GallerySyncError):
    """Base class for gallery configuration problems."""


class InvalidGalleryUrl(GalleryConfigError):
    pass


class DuplicateGallery(GalleryConfigError):
    pass
