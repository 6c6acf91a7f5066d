"""Errors raised by the refresh pipeline and the catalog queries."""


class RefreshError(Exception):
    """Base class for anything that aborts a catalog refresh."""


class UpstreamUnavailable(RefreshError):
    """One of the external data sources could not be fetched or parsed."""

    def __init__(self, endpoint, message, url=None):
        self.endpoint = endpoint
        self.message = message
        self.url = url
        super().__init__(f"{endpoint}: {message}")


class ValidationSkipped(RefreshError):
    """A source record lacks required fields. Logged, never raised out of a batch."""

    def __init__(self, record, reason):
        self.record = record
        self.reason = reason
        super().__init__(reason)


class StorageFailure(RefreshError):
    """A write or read-back failed while the refresh transaction was open."""


class ArtifactWriteFailed(RefreshError):
    """The summary image could not be rendered or written."""


class RefreshTimedOut(RefreshError):
    """The refresh ran past its configured deadline."""


class CountryNotFound(Exception):
    def __init__(self, name):
        self.name = name
        super().__init__(f"Country not found: {name}")
