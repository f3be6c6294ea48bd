"""
Response envelopes shared by every endpoint.

    success   -> {"success": true,  "code": ..., "data": ...}
    error     -> {"success": false, "code": ..., "errors": ...}
    with_meta -> {"success": true,  "code": ..., "data": ..., "meta": ...}
    no_content -> empty body, 204
"""

from typing import Any, Optional

from fastapi import Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _code(status_code: int, code: Optional[Any]) -> Any:
    return status_code if code is None else code


def success(data: Any, status_code: int = status.HTTP_200_OK, code: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": True,
            "code": _code(status_code, code),
            "data": jsonable_encoder(data),
        },
    )


def error(errors: Any, status_code: int = status.HTTP_400_BAD_REQUEST, code: Optional[Any] = None) -> JSONResponse:
    """
    Error envelope.

    Structured errors (dicts and lists) are kept as they are; anything else
    is wrapped as ``{"message": str(errors)}``.
    """
    if not isinstance(errors, (dict, list)):
        errors = {"message": str(errors)}

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "code": _code(status_code, code),
            "errors": jsonable_encoder(errors),
        },
    )


def with_meta(data: dict, status_code: int = status.HTTP_200_OK, code: Optional[Any] = None) -> JSONResponse:
    """
    Success envelope lifting ``data["meta"]`` next to the payload.

    Args:
        data: Transformed payload, usually ``{"data": [...], "meta": {...}}``
    """
    payload = {key: value for key, value in data.items() if key != "meta"}

    return JSONResponse(
        status_code=status_code,
        content={
            "success": True,
            "code": _code(status_code, code),
            "data": jsonable_encoder(payload),
            "meta": jsonable_encoder(data.get("meta")),
        },
    )


def no_content() -> Response:
    return Response(content="", status_code=status.HTTP_204_NO_CONTENT)
