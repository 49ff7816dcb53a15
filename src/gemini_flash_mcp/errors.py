# Error taxonomy shared by the generator and the tool handler.
#   ConfigurationError -> fatal at startup (missing key, unusable output dir)
#   ValidationError    -> malformed tool call, surfaced as "invalid params"
#   ProviderError      -> transport/provider failures, normalised to a Failure outcome
#   StorageError       -> output directory or artifact write problems

from __future__ import annotations


class ImageGenError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ImageGenError):
    pass


class ValidationError(ImageGenError):
    pass


class ProviderError(ImageGenError):
    """The provider could not be reached, refused, or replied with something unusable."""


class ProviderTimeout(ProviderError):
    pass


class StorageError(ImageGenError):
    pass
