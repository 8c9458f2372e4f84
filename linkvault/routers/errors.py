"""Translate typed service failures into tagged HTTP error bodies."""

from fastapi import HTTPException

from linkvault.services.errors import SharingError


def tagged_error(error: SharingError) -> HTTPException:
    """409 with ``{"error_summary": ..., "error": {".tag": ...}}`` as detail."""
    return HTTPException(status_code=409, detail=error.to_dict())
