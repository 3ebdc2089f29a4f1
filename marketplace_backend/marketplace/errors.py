"""
Error taxonomy for the marketplace services.

Services raise these; `marketplace.api.main` maps them to JSON responses using the
`status_code` carried by each class.
"""


class MarketplaceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MarketplaceError):
    status_code = 400


class AuthenticationRequiredError(MarketplaceError):
    status_code = 401


class PermissionDeniedError(MarketplaceError):
    status_code = 403


class NotFoundError(MarketplaceError):
    status_code = 404


class ConflictError(MarketplaceError):
    status_code = 409


class CatalogQueryError(MarketplaceError):
    """Every catalog query attempt (including relation fallbacks) failed."""

    status_code = 502


class SchemaUnavailableError(MarketplaceError):
    """An optional table the operation needs is not present in the database."""

    status_code = 503
