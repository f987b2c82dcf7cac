# Overview: Request decorators for API routes.

from functools import wraps

from .errors import Unauthorized
from .request_context import current_request_context


def require_auth(f):
    """
    Require an authenticated owner.

    The before_request hook has already rejected invalid tokens; this turns
    an anonymous request into a 401 before the handler runs any query.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_request_context().is_authenticated:
            raise Unauthorized("Authentication required")
        return f(*args, **kwargs)

    return decorated_function
