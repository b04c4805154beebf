"""Map feature errors and failure typing."""


class MapFeaturesError(Exception):
    """Base class for map feature failures."""

    error_code = "MAP_FEATURES_ERROR"


class ArtifactContractError(MapFeaturesError):
    """Raised when the raw artifact feed is not of the expected shape."""

    error_code = "CONTRACT_ERROR"


class FeatureCacheError(MapFeaturesError):
    """Raised when the feature cache could not be read or replaced."""

    error_code = "FEATURE_CACHE_ERROR"


class RegenerationError(MapFeaturesError):
    """Raised when a regeneration failed; the cache keeps its previous contents."""

    error_code = "REGENERATION_FAILED"


class RegenerationTimeoutError(RegenerationError):
    """Raised when feature generation exceeded its time budget."""

    error_code = "REGENERATION_TIMEOUT"
