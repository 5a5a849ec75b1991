# =================================================================
#   NPC Smart Report - Route Gate
#   Decides, per page navigation, whether to allow the request or
#   redirect it, based on the presence of the session cookie.
#
#   The decision is a pure function of (path, query args, cookies).
#   It holds no state between requests and never raises. Token
#   validity is NOT checked here; the backend re-authorizes every call.
# =================================================================

import re
import logging
from collections import namedtuple
from urllib.parse import urlencode, urlsplit

from flask import redirect, request

from config import Config

logger = logging.getLogger(__name__)

ALLOW = 'allow'
REDIRECT = 'redirect'

GateDecision = namedtuple('GateDecision', ['action', 'location'])

# Paths the gate never looks at: any path beginning with "/api" (/apiary
# included), static files, the favicon and image assets.
_EXCLUDED_PREFIX = re.compile(r'^/(?:api|static/|favicon\.ico)')
_ASSET_SUFFIX = re.compile(r'\.(?:svg|png|jpg|jpeg|gif|webp)$', re.IGNORECASE)

# Which role may enter which section when role enforcement is on.
SECTION_ROLES = {
    '/admin': 'admin',
    '/student': 'student',
}
KNOWN_ROLES = frozenset(SECTION_ROLES.values())


def normalize_role(role):
    """'Admin ' -> 'admin'; anything that is not a string reads as no role."""
    if not isinstance(role, str):
        return None
    return role.strip().lower() or None


def is_gated_path(path):
    """Return True when the gate applies to this path (page navigations only)."""
    path = path or '/'
    return not (_EXCLUDED_PREFIX.match(path) or _ASSET_SUFFIX.search(path))


def is_public_path(path, auth_prefix=None):
    """PUBLIC paths are the root and anything under the auth prefix."""
    auth_prefix = auth_prefix or Config.AUTH_PREFIX
    return path == '/' or path.startswith(auth_prefix)


def landing_path_for_role(role):
    """Default page for a role once signed in."""
    if normalize_role(role) == 'admin':
        return Config.ADMIN_LANDING_PATH
    return Config.DEFAULT_LANDING_PATH


def safe_return_path(value, auth_prefix=None):
    """
    Validate a `from` return path.

    Only local, absolute paths are accepted, and never a PUBLIC path
    (sending a signed-in user back to the login page would bounce them
    straight back here). Returns None when the value is unusable.
    """
    if not value or not isinstance(value, str):
        return None
    if not value.startswith('/') or value.startswith('//') or value.startswith('/\\'):
        return None
    parts = urlsplit(value)
    if parts.scheme or parts.netloc:
        return None
    if is_public_path(parts.path, auth_prefix):
        return None
    return value


def _section_role(path):
    for prefix, role in SECTION_ROLES.items():
        if path == prefix or path.startswith(prefix + '/'):
            return role
    return None


def evaluate(path, args=None, cookies=None, role=None, enforce_roles=None,
             cookie_name=None, login_path=None, default_path=None, auth_prefix=None):
    """
    Decide what to do with one navigation request.

    Args:
        path: The requested path, e.g. '/admin/dashboard'.
        args: Mapping of query parameters (only 'from' is read).
        cookies: Mapping of cookie names to values.
        role: Role from verified session claims, or None. Only consulted
            when role enforcement is on.
        enforce_roles: Override for Config.ENFORCE_ROLE_SECTIONS.

    Returns:
        GateDecision(action, location) where action is ALLOW or REDIRECT
        and location is the redirect target (None when allowed).
    """
    args = args or {}
    cookies = cookies or {}
    cookie_name = cookie_name or Config.SESSION_COOKIE_NAME
    login_path = login_path or Config.LOGIN_PATH
    default_path = default_path or Config.DEFAULT_LANDING_PATH
    auth_prefix = auth_prefix or Config.AUTH_PREFIX
    if enforce_roles is None:
        enforce_roles = Config.ENFORCE_ROLE_SECTIONS

    if not is_gated_path(path):
        return GateDecision(ALLOW, None)

    token = cookies.get(cookie_name)
    authenticated = bool(token)
    role = normalize_role(role)
    if enforce_roles and role not in KNOWN_ROLES:
        # Without a verified, known role the token alone is not enough.
        # Such a session is sent to login and never to a role landing page.
        authenticated = False

    public = is_public_path(path, auth_prefix)

    if not public and not authenticated:
        return GateDecision(REDIRECT, f"{login_path}?{urlencode({'from': path})}")

    if public and authenticated:
        target = safe_return_path(args.get('from'), auth_prefix)
        if target is None:
            target = landing_path_for_role(role) if enforce_roles else default_path
        return GateDecision(REDIRECT, target)

    if enforce_roles and not public:
        required = _section_role(path)
        if required and role != required:
            return GateDecision(REDIRECT, landing_path_for_role(role))

    return GateDecision(ALLOW, None)


def install_route_gate(app, claims_reader=None):
    """
    Register the gate as a before_request hook on a Flask app.

    claims_reader is a callable returning the verified claims dict (or None)
    for the current request; it is only used for role enforcement.
    """

    @app.before_request
    def route_gate():
        role = None
        if Config.ENFORCE_ROLE_SECTIONS and claims_reader is not None:
            claims = claims_reader()
            role = claims.get('role') if claims else None

        decision = evaluate(request.path, request.args, request.cookies, role=role)
        if decision.action == REDIRECT:
            logger.info(f"[GATE] {request.path} -> {decision.location}")
            return redirect(decision.location)
        return None

    return route_gate
