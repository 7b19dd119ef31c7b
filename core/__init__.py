from .exceptions import (
    HelperError, AuthFailure, TokenExpired, ActionNotFound,
    NotReversible, PlatformMismatch, CatalogError
)
from .auth import AuthorizationClaims, TokenValidator, authorize
from .reporting import ReportingClient
from .service import AutomationService, HelperState
