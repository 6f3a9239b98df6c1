"""
BookReview Backend: Credentials & Tokens
==========================================

What:  Password hashing/verification and signed access tokens.
How:   bcrypt for salted, cost-parameterized hashes; PyJWT for HS256 tokens
       carrying the user id in `sub` plus `iat`/`exp`.
Who:   AuthService (register/login) and the auth dependencies.

All functions here are stateless. bcrypt is CPU-bound, so the async wrappers
push it to Starlette's threadpool instead of blocking the event loop.

Token claims:
    {
        "sub": "42",          # user id (string, per RFC 7519)
        "iat": 1705312800,
        "exp": 1705399200
    }
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import bcrypt
import jwt
from starlette.concurrency import run_in_threadpool

from bookreview.exceptions import TokenError

# bcrypt only uses the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def _encode_password(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(plaintext: str, rounds: int = 10) -> str:
    """One-way salted hash; the salt and cost are embedded in the result."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode_password(plaintext), salt).decode("utf-8")


def verify_password(plaintext: str, credential: str) -> bool:
    """Constant-time comparison through bcrypt; malformed hashes never match."""
    try:
        return bcrypt.checkpw(_encode_password(plaintext), credential.encode("utf-8"))
    except ValueError:
        return False


async def hash_password_async(plaintext: str, rounds: int = 10) -> str:
    return await run_in_threadpool(hash_password, plaintext, rounds)


async def verify_password_async(plaintext: str, credential: str) -> bool:
    return await run_in_threadpool(verify_password, plaintext, credential)


@lru_cache(maxsize=4)
def dummy_credential(rounds: int = 10) -> str:
    """
    A throwaway hash verified when a login email is unknown, so both
    'no such user' and 'wrong password' cost one bcrypt check.
    """
    return hash_password("not-a-real-password", rounds)


async def verify_against_dummy(plaintext: str, rounds: int = 10) -> None:
    credential = await run_in_threadpool(dummy_credential, rounds)
    await verify_password_async(plaintext, credential)


# ── Tokens ────────────────────────────────────────────────────────────────

def issue_token(
    claims: Dict[str, Any],
    secret: str,
    ttl: timedelta,
    algorithm: str = "HS256",
) -> str:
    """
    Sign a time-limited token.

    `claims` must contain `sub`; it is stringified so the numeric user id
    survives PyJWT's subject validation.
    """
    if "sub" not in claims:
        raise ValueError("Token claims must include 'sub'")
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload["sub"] = str(payload["sub"])
    payload["iat"] = now
    payload["exp"] = now + ttl
    return jwt.encode(payload, secret, algorithm=algorithm)


def issue_user_token(user_id: int, secret: str, ttl: timedelta, algorithm: str = "HS256") -> str:
    return issue_token({"sub": user_id}, secret, ttl, algorithm)


def verify_token(token: str, secret: str, algorithm: str = "HS256") -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        TokenError: for any signature, expiry, format or claim failure.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as exc:
        raise TokenError(context={"reason": type(exc).__name__}) from exc


def user_id_from_claims(claims: Dict[str, Any]) -> int:
    """Parse the subject back into a user id; a non-numeric subject is an invalid token."""
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenError(context={"reason": "invalid_subject"}) from exc


def extract_bearer(header_value: Optional[str]) -> Optional[str]:
    """
    Parse an `Authorization: Bearer <token>` header value; the scheme is
    matched case-insensitively.

    Returns None (not an error) when the header is absent or malformed; the
    caller decides that a missing token means 401.
    """
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
