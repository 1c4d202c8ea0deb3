"""
Identity collaborator.

Principal 只携带 {id, role}。真正的认证（JWT / 签名）不在本系统范围内：
HTTP 层从 `Authorization: Bearer <base64(JSON)>` 解出 principal，不做任何签名校验。
"""

import base64
import binascii
import json
from dataclasses import dataclass

from .exceptions import ForbiddenError

RECEPTIONIST = 'receptionist'
TECHNICIAN = 'technician'
MANAGER = 'manager'
PHYSICIAN = 'physician'
PATIENT = 'patient'

ROLES = frozenset({RECEPTIONIST, TECHNICIAN, MANAGER, PHYSICIAN, PATIENT})

# ── 各操作允许的角色 ─────────────────────────────────────────────────────
CREATE_ORDER_ROLES = frozenset({RECEPTIONIST, MANAGER, PHYSICIAN})
ACCESSION_ROLES = frozenset({TECHNICIAN, MANAGER})
VERIFY_RESULTS_ROLES = frozenset({TECHNICIAN, MANAGER})
PAYMENT_ROLES = frozenset({RECEPTIONIST, MANAGER})
WORKLIST_ROLES = frozenset({TECHNICIAN, MANAGER})
ELIGIBILITY_ROLES = frozenset({RECEPTIONIST, MANAGER})
AUDIT_SEARCH_ROLES = frozenset({MANAGER})


@dataclass(frozen=True)
class Principal:
    id: str
    role: str


def require_role(principal, allowed_roles, operation=''):
    """Raise ForbiddenError unless principal.role is one of allowed_roles."""
    if principal is None or principal.role not in allowed_roles:
        raise ForbiddenError(
            message=f"Role is not permitted to {operation or 'perform this operation'}.",
            code='ROLE_NOT_PERMITTED',
            detail={
                'role': getattr(principal, 'role', None),
                'allowed_roles': sorted(allowed_roles),
            },
        )
    return principal


def principal_from_authorization(header):
    """
    Decode `Bearer <base64 JSON>` into a Principal.

    Raises ForbiddenError(NOT_AUTHENTICATED, 401) when the header is absent
    or does not decode to {"id": str, "role": <known role>}.
    """
    def _unauthenticated(reason):
        return ForbiddenError(
            message='Authentication required.',
            code='NOT_AUTHENTICATED',
            detail={'reason': reason},
            http_status=401,
        )

    if not header or not header.startswith('Bearer '):
        raise _unauthenticated('missing bearer token')

    token = header.split(' ', 1)[1].strip()
    try:
        payload = json.loads(base64.b64decode(token, validate=True).decode('utf-8'))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise _unauthenticated('token is not base64 encoded JSON')

    if not isinstance(payload, dict):
        raise _unauthenticated('token payload must be an object')

    user_id = payload.get('id')
    role = payload.get('role')
    if not isinstance(user_id, str) or not user_id or role not in ROLES:
        raise _unauthenticated('token must carry an id and a known role')

    return Principal(id=user_id, role=role)


def encode_principal(principal):
    """Inverse of principal_from_authorization; used by clients and tests."""
    raw = json.dumps({'id': principal.id, 'role': principal.role}).encode('utf-8')
    return f"Bearer {base64.b64encode(raw).decode('ascii')}"
