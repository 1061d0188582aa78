"""Error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations


class PortalError(Exception):
    """Base class for request-level failures."""

    status_code = 500


class NotFoundError(PortalError, LookupError):
    """A serial, submission, policy or profile lookup missed."""

    status_code = 404


class ValidationFailure(PortalError, ValueError):
    """A required field is missing or malformed."""

    status_code = 400


class ConflictRaceError(PortalError):
    """A concurrent request already consumed the resource."""

    status_code = 409


class ExternalServiceFailure(PortalError):
    """The file store or mail relay call failed."""

    status_code = 502
