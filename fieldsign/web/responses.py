"""Shared JSON response helper for the FieldSign routers."""
from __future__ import annotations

from fastapi.responses import JSONResponse


def private_response(body: dict, *, status_code: int = 200) -> JSONResponse:
    """JSON response that must not be stored by shared caches."""
    return JSONResponse(body, status_code=status_code, headers={"Cache-Control": "private, no-store"})
