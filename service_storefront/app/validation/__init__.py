"""
Request input sanitization and validation.
"""

from .sanitizer import (
    normalize_endpoint,
    parse_bool_param,
    parse_int_param,
    parse_json_body,
    parse_positive_id,
    sanitize_image_url,
    sanitize_phone,
    sanitize_string,
    strip_markup,
    validate_cart,
    validate_product_fields,
    validate_unit,
)

__all__ = [
    "normalize_endpoint",
    "parse_bool_param",
    "parse_int_param",
    "parse_json_body",
    "parse_positive_id",
    "sanitize_image_url",
    "sanitize_phone",
    "sanitize_string",
    "strip_markup",
    "validate_cart",
    "validate_product_fields",
    "validate_unit",
]
