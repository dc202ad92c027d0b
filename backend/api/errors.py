from __future__ import annotations

from fastapi import HTTPException
from starlette import status


class ZoomTooLowException(HTTPException):
    def __init__(self, advisory: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=advisory,
        )


class RunInProgressException(HTTPException):
    def __init__(self, state: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A comparison is already running (state={state})",
        )
