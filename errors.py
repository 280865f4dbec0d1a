"""Failure taxonomy for the refresh pipeline."""


class RefreshError(Exception):
    """Base class for refresh failures."""


class SourceUnavailable(RefreshError):
    """An external source could not be fetched or decoded.

    ``source`` is the :class:`service.Source` that failed; ``details`` is
    the client-facing message.
    """

    def __init__(self, source, reason: str = ""):
        self.source = source
        self.reason = reason
        label = getattr(source, "label", str(source))
        self.details = f"Could not fetch data from {label}"
        super().__init__(f"{self.details}: {reason}" if reason else self.details)


class PersistenceFailure(RefreshError):
    """The atomic commit of a reconciled batch failed and was rolled back."""


class SummaryGenerationFailure(RefreshError):
    """The summary image could not be rendered or written."""
