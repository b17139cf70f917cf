"""Pydantic schemas."""

from parish_admin.schemas.setup import (
    FALLBACK_SETUP,
    SETUP_DEFAULT_ID,
    OptionItem,
    SetupDocument,
    merge_setup_with_fallback,
    strip_id,
)

__all__ = [
    # Settings document
    "FALLBACK_SETUP",
    "SETUP_DEFAULT_ID",
    "OptionItem",
    "SetupDocument",
    "merge_setup_with_fallback",
    "strip_id",
]
