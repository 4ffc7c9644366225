"""Authority form validation endpoint."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from api.dependencies import verify_api_key
from api.logging import safe_log_request, start_request_log
from api.models.responses import AuthorityValidationResponse, ErrorCodes
from core.validation import validate_authority

router = APIRouter(prefix="/v1/authorities")


@router.post("/validate", response_model=AuthorityValidationResponse)
async def validate(
    request: Request,
    payload: dict[str, Any] = Body(...),
    _api_key: str = Depends(verify_api_key),
):
    """
    Validate an authority submission before it is saved.

    Returns 422 VALIDATION_ERROR with one detail line per invalid field.
    """
    request_log = start_request_log(request)
    try:
        try:
            authority = validate_authority(payload)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={
                    "error": "Authority validation failed",
                    "code": ErrorCodes.VALIDATION_ERROR,
                    "details": str(e).splitlines(),
                },
            )

        request_log.succeed()
        return AuthorityValidationResponse(valid=True, authority=authority.model_dump())

    except HTTPException as e:
        request_log.fail(e)
        raise

    finally:
        safe_log_request(request_log)
