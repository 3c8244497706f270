class RouteProcessingError(Exception):
    """Base class for errors raised by the geoprocessing pipeline."""


class InvalidGPXError(RouteProcessingError, ValueError):
    """The GPX document is malformed or holds no usable line geometry."""


class InsufficientPointsError(RouteProcessingError, ValueError):
    """A coordinate sequence is too short to be sent for attribution."""


class AttributionFetchError(RouteProcessingError):
    """The attribution service failed for one chunk of a route."""


class RouteNotFoundError(RouteProcessingError, LookupError):
    """No stored route matches the requested id."""
