"""HTTP ответы SCIM"""

from typing import Dict, Optional

from fastapi.responses import JSONResponse

from ..models.scim import ErrorResponse

SCIM_MEDIA_TYPE = "application/scim+json"


class SCIMResponse(JSONResponse):
    """JSON ответ с типом application/scim+json"""
    media_type = SCIM_MEDIA_TYPE


def error_response(
    status_code: int,
    detail: str,
    scim_type: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None
) -> SCIMResponse:
    """Тело ошибки RFC 7644 §3.12 (status передаётся строкой)"""
    body = ErrorResponse(status=str(status_code), scimType=scim_type, detail=detail)
    return SCIMResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers
    )
