"""Package request parsing."""

from .models import SourceKind, SourceType, Specifier
from .parser import classify, validate_name

__all__ = [
    "SourceKind",
    "SourceType",
    "Specifier",
    "classify",
    "validate_name",
]
