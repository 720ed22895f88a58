# src/crudgate/api/envelope.py
"""Uniform `{code, message, data}` response payload."""

import base64
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

SUCCESS_CODE = 200
SUCCESS_MESSAGE = "success"
ERROR_CODE = 500

# Byte columns leave the gate as base64 text.
JSON_ENCODERS = {bytes: lambda value: base64.b64encode(value).decode("ascii")}


class Envelope(BaseModel):
    """Every gate response body, success or failure."""

    code: int
    message: str
    data: Any = None


def ok(data: Any = None) -> Envelope:
    return Envelope(code=SUCCESS_CODE, message=SUCCESS_MESSAGE, data=data)


def fail(error: Exception | str) -> Envelope:
    return Envelope(code=ERROR_CODE, message=str(error), data=None)


def render(envelope: Envelope, status_code: int = 200) -> JSONResponse:
    """
    Serialize an envelope.

    The HTTP status stays 200 for handled errors; only routing mismatches
    use 404 / 405.
    """
    payload = jsonable_encoder(envelope.model_dump(by_alias=True), custom_encoder=JSON_ENCODERS)
    return JSONResponse(status_code=status_code, content=payload)
