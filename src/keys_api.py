"""REST API endpoint for API key validation."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth import lookup_api_key, resolve_api_key
from database import get_db
from typedefs import KeyValidationRequest, KeyValidationResponse

router = APIRouter(prefix="/api/v1/keys", tags=["keys"])


@router.post("/validate", response_model=KeyValidationResponse)
def validate_key(
    request: KeyValidationRequest,
    db: Session = Depends(get_db),
) -> KeyValidationResponse:
    """Check whether an API key is usable and return its account label.

    An unknown or inactive key is not an error: the response says
    ``valid: false`` with the reason.
    """
    account = resolve_api_key(db, request.key)
    if account is not None:
        return KeyValidationResponse(valid=True, account_label=account.name)

    if lookup_api_key(db, request.key) is None:
        return KeyValidationResponse(valid=False, error="API key not found")

    return KeyValidationResponse(valid=False, error="API key is inactive")
