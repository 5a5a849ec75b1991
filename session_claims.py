# =================================================================
#   NPC Smart Report - Session Claims
#   Signed cookie holding who the session belongs to (role, name,
#   email). Written once after OTP verification, verified on every read.
# =================================================================

import datetime
import logging

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def issue_claims(secret_key, role, name='', email='', student_role=None, ttl_hours=8):
    """Encode the claims for one session as a JWT string."""
    payload = {
        'role': role,
        'name': name or '',
        'email': email or '',
        'exp': datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(hours=ttl_hours)
    }
    if student_role:
        payload['student_role'] = student_role
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def read_claims(secret_key, token):
    """
    Decode and verify a claims token.

    Returns the claims dict, or None when the token is missing, expired,
    tampered with or lacks a role.
    """
    if not token:
        return None
    try:
        data = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("[AUTH] Session claims expired")
        return None
    except jwt.InvalidTokenError:
        logger.warning("[AUTH] Rejected invalid session claims")
        return None

    if not data.get('role'):
        return None
    return data
