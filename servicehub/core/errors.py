"""Domain exceptions raised by the tracking, chat and geocoding layers."""


class ServiceHubError(Exception):
    """Base class for all domain errors."""


class PositionError(ServiceHubError):
    """The device position could not be acquired."""


class PositionPermissionDeniedError(PositionError):
    """The user denied access to the device location."""


class PositionUnavailableError(PositionError):
    """No fix was obtained (unavailable, unsupported or timed out)."""


class PersistenceError(ServiceHubError):
    """A write to the data store failed."""


class TrackingError(ServiceHubError):
    """Base class for tracking lifecycle errors."""


class DuplicateCheckInError(TrackingError):
    """A tracking record already exists for the booking."""


class TrackingNotFoundError(TrackingError):
    """No tracking record matches the given identifier."""


class InvalidTrackingStateError(TrackingError):
    """The requested transition is not allowed from the record's status."""


class GeocodingError(ServiceHubError):
    """The geocoding provider failed or could not be reached."""


class AddressNotFoundError(GeocodingError):
    """The geocoding provider returned no result for the address."""


class CredentialUnavailableError(GeocodingError):
    """No maps API key could be resolved."""
