from enum import Enum

from video_interview.access.session_context import SessionContext
from video_interview.utils.error_handlers import AccessDeniedError


class Route(str, Enum):
    ROOT = "/"
    LOGIN = "/login"
    INSTRUCTIONS = "/instructions"
    INTERVIEW = "/interview"
    ADMIN = "/admin"


PROTECTED_ROUTES = {Route.INSTRUCTIONS, Route.INTERVIEW, Route.ADMIN}


def require_authenticated(context: SessionContext):
    if not context.is_authenticated:
        raise AccessDeniedError("Login required", redirect_to=Route.LOGIN)


def require_admin(context: SessionContext):
    require_authenticated(context)
    if not context.is_admin:
        raise AccessDeniedError("Administrator access required", redirect_to=Route.INSTRUCTIONS)


def resolve_route(context: SessionContext, requested: Route) -> Route:
    """Return the route actually shown when `requested` is asked for."""
    if requested == Route.ROOT:
        return Route.LOGIN
    try:
        if requested == Route.ADMIN:
            require_admin(context)
        elif requested in PROTECTED_ROUTES:
            require_authenticated(context)
    except AccessDeniedError as e:
        return e.redirect_to
    return requested
