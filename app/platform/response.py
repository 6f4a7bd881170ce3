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
    Envelope for every non-streaming response.

    Error responses also carry the message under ``error`` so that the
    scan form can show rejections without unpacking the envelope.
    """
    is_error = status_code >= 400
    content = {
        "status_code": status_code,
        "status": "error" if is_error else "success",
        "message": message,
        "data": jsonable_encoder(data) if data is not None else {},
    }
    if is_error:
        content["error"] = message

    return JSONResponse(status_code=status_code, content=content)
