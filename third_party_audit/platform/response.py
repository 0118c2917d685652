from typing import Any, Dict, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Request completed",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Uniform `{status_code, status, message, data}` envelope used by every route
    and exception handler. `status` is "error" from 400 upwards.
    """
    return JSONResponse(
        status_code=status_code,
        content={
            "status_code": status_code,
            "status": "success" if status_code < 400 else "error",
            "message": message,
            "data": jsonable_encoder(data) if data is not None else {},
        },
    )


def analysis_response(result: Dict[str, Any], payload: Optional[Any] = None) -> JSONResponse:
    """
    Wrap an analyzer result.

    A rejected input (`success: False`) is a 422 carrying the full result so
    the caller sees `state.errors`. Otherwise `payload` (default: the whole
    result) is returned with 200, even when some components failed.
    """
    if not result.get("success"):
        return api_response(
            data=result,
            message=result.get("error") or "Third-party analysis failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    return api_response(
        data=result if payload is None else payload,
        message="Third-party analysis completed",
        status_code=status.HTTP_200_OK,
    )
