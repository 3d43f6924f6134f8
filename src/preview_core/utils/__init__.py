"""Utility modules."""

from preview_core.utils.http import json_object
from preview_core.utils.validation import is_safe_identifier, validate_identifier

__all__ = ["is_safe_identifier", "json_object", "validate_identifier"]
