from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Standard envelope for API responses.
    status is "success" below 400 and "error" otherwise.
    """
    status_str = "success" if status_code < 400 else "error"
    data = jsonable_encoder(data) if data is not None else {}

    return JSONResponse(
        status_code=status_code,
        content={
            "status_code": status_code,
            "status": status_str,
            "message": message,
            "data": data,
        },
    )


def api_success(message: Optional[str] = None, status_code: int = status.HTTP_200_OK, **fields: Any) -> JSONResponse:
    """Flat `{"success": true, ...}` body used by the payment endpoints."""
    content: dict[str, Any] = {"success": True}
    if message:
        content["message"] = message
    content.update(fields)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))
