from typing import Any, Optional

from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(
    data: Any = None,
    *,
    message: str = "Success",
    status_code: int = 200,
) -> JSONResponse:
    """
    Standard success wrapper:
    {
      "statusCode": 200,
      "data": ...,
      "message": "..."
    }
    """
    payload = {"statusCode": status_code, "data": data, "message": message}

    # jsonable_encoder converts UUID/date/Decimal/pydantic models (by alias) to JSON-safe types
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def err(
    message: str = "Something went wrong",
    *,
    status_code: int = 400,
    errors: Optional[list] = None,
) -> JSONResponse:
    """
    Standard error wrapper. `data` is always null; `errors` is only present
    for request validation failures.
    """
    payload: dict[str, Any] = {"statusCode": status_code, "data": None, "message": message}
    if errors is not None:
        payload["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def http_error(exc: Exception) -> HTTPException:
    """Translate a service exception (message + error_code) into an HTTP error."""
    status_code = 404 if getattr(exc, "error_code", None) == "NOT_FOUND" else 400
    return HTTPException(status_code=status_code, detail=getattr(exc, "message", str(exc)))
