"""
Shared service instances for the routes.

One ConverterService (and so one engine and cache) serves the whole
process. Tests swap it via `app.dependency_overrides[get_converter]`.
"""
from __future__ import annotations

from typing import Optional

from mathscribe.services.converter import ConverterService

_converter: Optional[ConverterService] = None


def get_converter() -> ConverterService:
    global _converter
    if _converter is None:
        _converter = ConverterService()
    return _converter
