"""Exceptions raised by the challenge engine and its collaborators."""


class ChallengeError(Exception):
    """Base class for all challenge engine errors."""


class CatalogError(ChallengeError, ValueError):
    """A challenge catalog was authored inconsistently."""


class PersistenceError(ChallengeError, RuntimeError):
    """Writing a progress record to durable storage failed."""


class InspectionError(ChallengeError):
    """A resource inspector could not answer a query."""


class ResourceNotFoundError(InspectionError):
    """The inspected resource does not exist."""
