# =================================================================
#   NPC Smart Report - Backend Client
#   The only module that talks HTTP to the NPC Smart Report API.
#
#   Every response is parsed as the {success, data, message} envelope
#   and the `data` part is validated against the endpoint's schema.
#   Anything else (network failure, non-2xx, bad JSON, success=false,
#   malformed data) surfaces as a single BackendError.
# =================================================================

import json
import datetime
import logging
import urllib.request
import urllib.error
from http.cookies import CookieError, SimpleCookie
from urllib.parse import urlencode

from pydantic import ValidationError

from schemas import Envelope

logger = logging.getLogger(__name__)

USER_AGENT = 'NPC-SmartReport-Web/1.0'


class BackendError(Exception):
    """A backend call failed; `message` is safe to show to the user."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.message = message
        self.status = status


class BackendResult:
    """Parsed outcome of a successful call."""

    def __init__(self, data, message='', login_token=None):
        self.data = data
        self.message = message
        self.login_token = login_token


def _extract_login_token(headers, cookie_name):
    """Pull the session token out of any Set-Cookie headers."""
    for header in headers.get_all('Set-Cookie') or []:
        jar = SimpleCookie()
        try:
            jar.load(header)
        except CookieError:
            continue
        if cookie_name in jar and jar[cookie_name].value:
            return jar[cookie_name].value
    return None


class BackendClient:
    """
    Thin JSON client for the backend API.

    One instance is shared by the app; it holds no per-user state; the
    session token is passed into every call.
    """

    def __init__(self, base_url, timeout=10, cookie_name='loginToken'):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.cookie_name = cookie_name

    def _build_request(self, method, path, params=None, payload=None, token=None):
        url = f"{self.base_url}{path}"
        if params:
            clean = {k: v for k, v in params.items() if v is not None and v != ''}
            if clean:
                url = f"{url}?{urlencode(clean)}"

        body = None
        if payload is not None:
            body = json.dumps(payload).encode('utf-8')

        req = urllib.request.Request(url, data=body, method=method)
        req.add_header('Accept', 'application/json')
        req.add_header('User-Agent', USER_AGENT)
        if body is not None:
            req.add_header('Content-Type', 'application/json')
        if token:
            req.add_header('Cookie', f"{self.cookie_name}={token}")
        return req

    def request(self, method, path, params=None, payload=None, token=None, model=None):
        """
        Perform one call and return a BackendResult.

        Args:
            method: HTTP method.
            path: Backend path, e.g. '/api/admin/dashboard/getClasses'.
            params: Query parameters (empty values are dropped).
            payload: JSON body for POST/PUT.
            token: Session token forwarded as the login cookie.
            model: pydantic model the envelope's `data` must satisfy.

        Raises:
            BackendError: on any failure, with a user-facing message.
        """
        req = self._build_request(method, path, params, payload, token)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                status = response.status
                raw = response.read()
                login_token = _extract_login_token(response.headers, self.cookie_name)
        except urllib.error.HTTPError as e:
            raw = e.read()
            message = self._message_from_body(raw) or f"Backend returned HTTP {e.code}"
            logger.warning(f"[BACKEND] {method} {path} - HTTP {e.code}: {message}")
            raise BackendError(message, status=e.code)
        except (urllib.error.URLError, OSError) as e:
            reason = getattr(e, 'reason', e)
            logger.error(f"[BACKEND] {method} {path} - unreachable: {reason}")
            raise BackendError("Unable to connect to the server. Please try again.")

        try:
            body = json.loads(raw.decode('utf-8'))
            envelope = Envelope.model_validate(body)
        except (ValueError, UnicodeDecodeError, ValidationError):
            logger.error(f"[BACKEND] {method} {path} - invalid response envelope")
            raise BackendError("Received an invalid response from the server.", status=status)

        if not envelope.success:
            message = envelope.message or "Request failed"
            logger.warning(f"[BACKEND] {method} {path} - success=false: {message}")
            raise BackendError(message, status=status)

        data = envelope.data
        if data is None and isinstance(body, dict):
            # Some endpoints put their payload beside `success` instead of under `data`
            data = {k: v for k, v in body.items() if k not in ('success', 'message')} or None
        if model is not None:
            try:
                data = model.model_validate(data)
            except ValidationError as e:
                logger.error(f"[BACKEND] {method} {path} - malformed data: {e.error_count()} error(s)")
                raise BackendError("Received malformed data from the server.", status=status)

        return BackendResult(data, envelope.message, login_token)

    @staticmethod
    def _message_from_body(raw):
        try:
            body = json.loads(raw.decode('utf-8', errors='replace'))
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get('message') or body.get('error')
        return None

    def get(self, path, params=None, token=None, model=None):
        return self.request('GET', path, params=params, token=token, model=model)

    def post(self, path, payload=None, token=None, model=None):
        return self.request('POST', path, payload=payload or {}, token=token, model=model)

    def put(self, path, payload=None, token=None, model=None):
        return self.request('PUT', path, payload=payload or {}, token=token, model=model)

    def check_health(self):
        """Call the backend's health endpoint. Never raises."""
        checked_at = datetime.datetime.now(datetime.timezone.utc).isoformat()
        if not self.base_url:
            return {"reachable": False, "status": None, "checked_at": checked_at,
                    "message": "No backend URL configured"}
        try:
            req = urllib.request.Request(f"{self.base_url}/api/health", method='GET')
            req.add_header('User-Agent', USER_AGENT)
            with urllib.request.urlopen(req, timeout=5) as response:
                return {"reachable": response.status == 200, "status": response.status,
                        "checked_at": checked_at, "message": "ok"}
        except urllib.error.HTTPError as e:
            return {"reachable": False, "status": e.code, "checked_at": checked_at,
                    "message": f"HTTP {e.code}"}
        except (urllib.error.URLError, OSError, ValueError) as e:
            return {"reachable": False, "status": None, "checked_at": checked_at,
                    "message": str(getattr(e, 'reason', e))}
