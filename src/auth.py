"""API key authentication dependencies and utilities."""

import hashlib
import secrets
import string
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models import ApiKeyDB
from typedefs import utcnow

KEY_ALPHABET = string.ascii_letters + string.digits
KEY_SEGMENTS = (8, 4, 4, 4, 12)


def generate_api_key() -> str:
    """Generate a random API key such as ``Ab3dEf9h-1a2B-c3D4-...``."""
    return "-".join(
        "".join(secrets.choice(KEY_ALPHABET) for _ in range(length))
        for length in KEY_SEGMENTS
    )


def hash_api_key(key: str) -> str:
    """Hash an API key for storage and lookup. Raw keys are never stored."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def create_api_key(db: Session, name: str) -> tuple[ApiKeyDB, str]:
    """Create an active API key for the given account label.

    Returns:
        The stored key record and the raw key. The raw key cannot be
        recovered later.
    """
    key = generate_api_key()
    record = ApiKeyDB(name=name, key_hash=hash_api_key(key), key_prefix=key[:8])
    db.add(record)
    db.commit()
    db.refresh(record)
    return record, key


def lookup_api_key(db: Session, key: str) -> Optional[ApiKeyDB]:
    """Find a key record by raw key, active or not."""
    if not key:
        return None
    return db.query(ApiKeyDB).filter(ApiKeyDB.key_hash == hash_api_key(key)).first()


def resolve_api_key(db: Session, key: str) -> Optional[ApiKeyDB]:
    """Resolve a raw key to its account if the key exists and is active.

    Stamps ``last_used_at`` on success.
    """
    record = lookup_api_key(db, key)
    if record is None or not record.is_active:
        return None

    record.last_used_at = utcnow()
    db.commit()
    return record


def extract_token_from_request(request: Request) -> Optional[str]:
    """Extract Bearer token from Authorization header.

    Args:
        request: FastAPI Request object

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return None

    return auth_header[7:]  # Remove "Bearer " prefix


async def require_api_key(
    request: Request,
    db: Session = Depends(get_db),
) -> ApiKeyDB:
    """Resolve the request's Bearer API key to its owning account.

    Args:
        request: FastAPI Request object
        db: Database session

    Returns:
        ApiKeyDB of the authenticated account

    Raises:
        HTTPException: 401 if the key is missing, unknown or inactive

    Example:
        @router.post("/logs")
        def sync_logs(account: ApiKeyDB = Depends(require_api_key)):
            return {"owner_id": str(account.id)}
    """
    token = extract_token_from_request(request)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account = resolve_api_key(db, token)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or inactive API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return account
