"""
Utilities for testing JWT authentication
"""

import time
from typing import Any, Dict, List, Optional
from uuid import uuid4

import jwt

TEST_JWT_SECRET = "test-secret-key-min-32-chars-for-testing-only"


def create_test_jwt(
    subject: str,
    email: Optional[str] = None,
    roles: Optional[List[str]] = None,
    expires_in: int = 3600,
    secret: str = TEST_JWT_SECRET,
    additional_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create an HS256 token as the identity service would.

    Args:
        subject: 'sub' claim (user id)
        roles: Role strings, default ["USER"]
        expires_in: Seconds until expiry (negative for an expired token)
    """
    now = int(time.time())
    claims: Dict[str, Any] = {
        "sub": str(subject),
        "iat": now,
        "exp": now + expires_in,
        "roles": roles if roles is not None else ["USER"],
    }
    if email:
        claims["email"] = email
    if additional_claims:
        claims.update(additional_claims)
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(subject, roles: Optional[List[str]] = None, email: Optional[str] = None) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_test_jwt(str(subject), email=email, roles=roles)}"}


def admin_headers(subject=None) -> Dict[str, str]:
    return auth_headers(subject or uuid4(), roles=["ADMIN"])
