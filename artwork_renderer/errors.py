"""
Error taxonomy for the artwork renderer.

Per-episode errors (decode, render, storage) are caught by the batch
orchestrator and recorded; configuration and feed errors abort the whole
operation they belong to.
"""


class ArtworkError(Exception):
    """Base class for all artwork renderer errors."""


class ConfigurationError(ArtworkError):
    """Missing template, missing base artwork, or an invalid style value."""


class ImageDecodeError(ArtworkError):
    """The base image could not be fetched or decoded."""


class RenderError(ArtworkError):
    """A drawing or text measurement step failed."""


class StorageError(ArtworkError):
    """Encoding or uploading the rendered artwork failed."""


class FeedFetchError(ArtworkError):
    """The podcast feed could not be fetched or parsed."""


# Failures worth another attempt inside a batch
TRANSIENT_ERRORS = (ImageDecodeError, RenderError, StorageError)
