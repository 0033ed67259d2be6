from .session_context import SessionContext, IdentityProvider
from .guards import Route, require_authenticated, require_admin, resolve_route

__all__ = [
    'SessionContext',
    'IdentityProvider',
    'Route',
    'require_authenticated',
    'require_admin',
    'resolve_route',
]
