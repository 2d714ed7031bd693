"""
Input sanitization and validation for storefront requests.

Every helper either returns a normalized value or raises
:class:`shared.errors.ValidationError` naming the offending field. Nothing
here touches the store, so the gateway can reject bad input before any
persistence call is made.
"""

import json
import math
import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from shared.errors import ValidationError
from ..domain.models import CartItem, Unit, cart_total


_TAG_RE = re.compile(r"<[^>]*>")
_ENDPOINT_RE = re.compile(r"[^A-Za-z0-9/_\-]")
_PHONE_RE = re.compile(r"[^+\d\s]")
_IMAGE_PATH_RE = re.compile(r"[^A-Za-z0-9\-_./]")
_INT_RE = re.compile(r"[+-]?\d+")
_ID_RE = re.compile(r"\d+")

_HTTP_URL = TypeAdapter(AnyHttpUrl)

TRUE_VALUES = ("1", "true", "yes", "on")
MAX_NAME_LENGTH = 255
MAX_UNIT_LABEL_LENGTH = 20
MIN_PHONE_DIGITS = 10

# Storage limits: INTEGER ids and counters, NUMERIC(10, 2) amounts
MAX_INTEGER = 2_147_483_647
MAX_ID = MAX_INTEGER
MAX_OFFSET = 1_000_000
MAX_PRICE = 9_999_999.99
MAX_QTY = 100_000
MAX_ORDER_TOTAL = 99_999_999.99

DEFAULT_UNIT = Unit.KG.value
DEFAULT_STOCK_QTY = 1000
DEFAULT_SORT_ORDER = 99


def strip_markup(value: Any) -> str:
    """Remove tags and control characters, then trim."""
    text = _TAG_RE.sub("", str(value))
    text = "".join(char for char in text if ord(char) >= 32 or char in "\t\n\r")
    return text.strip()


def sanitize_string(value: Any, field: str, *, max_length: Optional[int] = None,
                    required: bool = False, allow_empty: bool = False) -> Optional[str]:
    """Trim and strip markup from a string field.

    An empty result is treated as absent (``None``) unless ``allow_empty`` is set.
    """
    if value is None:
        cleaned = None
    else:
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{field} must be a string", field=field)
        cleaned = strip_markup(value)
        if not cleaned and not allow_empty:
            cleaned = None

    if cleaned is None:
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None

    if max_length is not None and len(cleaned) > max_length:
        raise ValidationError(f"{field} too long (max {max_length} characters)", field=field)

    return cleaned


def normalize_endpoint(value: Optional[str]) -> str:
    """Reduce an endpoint selector to ``[A-Za-z0-9/_-]`` without surrounding slashes."""
    return _ENDPOINT_RE.sub("", value or "").strip("/")


def parse_positive_id(value: Any, field: str = "id") -> int:
    """Parse a positive integer identifier."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Required parameter missing: {field}", field=field)

    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}", field=field)

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and _ID_RE.fullmatch(value.strip()):
        parsed = int(value.strip())
    else:
        raise ValidationError(f"Invalid {field}", field=field)

    if parsed <= 0 or parsed > MAX_ID:
        raise ValidationError(f"Invalid {field}", field=field)
    return parsed


def parse_number(value: Any, field: str, *, maximum: Optional[float] = None) -> float:
    """Parse a finite number from a JSON number or numeric string."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be numeric", field=field)

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be numeric", field=field)
    else:
        raise ValidationError(f"{field} must be numeric", field=field)

    if not math.isfinite(number):
        raise ValidationError(f"{field} must be numeric", field=field)
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must not exceed {maximum}", field=field)
    return number


def parse_integer(value: Any, field: str, *, minimum: Optional[int] = None,
                  maximum: Optional[int] = None) -> int:
    """Parse an integer from a JSON number or numeric string."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer", field=field)

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float) and value.is_integer():
        parsed = int(value)
    elif isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        parsed = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer", field=field)

    if minimum is not None and parsed < minimum:
        raise ValidationError(f"{field} must be >= {minimum}", field=field)
    if maximum is not None and parsed > maximum:
        raise ValidationError(f"{field} must be <= {maximum}", field=field)
    return parsed


def parse_int_param(params: Mapping[str, Any], name: str, default: int, *,
                    minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """Read an integer query parameter; values above ``maximum`` are capped."""
    raw = params.get(name)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default

    value = parse_integer(raw, name, minimum=minimum)
    if maximum is not None and value > maximum:
        value = maximum
    return value


def parse_bool_param(params: Mapping[str, Any], name: str, default: bool = False) -> bool:
    """Read a boolean query parameter (1/true/yes/on are truthy)."""
    raw = params.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in TRUE_VALUES


def sanitize_phone(value: Any) -> Optional[str]:
    """Keep digits, ``+`` and whitespace; require at least ten digits."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, (dict, list, bool)):
        raise ValidationError("Invalid phone number format", field="phone")

    cleaned = _PHONE_RE.sub("", str(value)).strip()
    digits = re.sub(r"\D", "", cleaned)
    if len(digits) < MIN_PHONE_DIGITS:
        raise ValidationError("Invalid phone number format", field="phone")
    return cleaned


def sanitize_image_url(value: Any) -> str:
    """Keep absolute http(s) URLs; reduce anything else to a safe relative path."""
    if value is None:
        return ""
    text = str(value).strip()
    if not text:
        return ""

    try:
        _HTTP_URL.validate_python(text)
        return text
    except PydanticValidationError:
        return _IMAGE_PATH_RE.sub("", text)


def parse_json_body(raw: bytes) -> Dict[str, Any]:
    """Decode a JSON object body. Empty or malformed bodies are client errors."""
    if not raw or not raw.strip():
        raise ValidationError("Empty request body", field="body")

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        message = exc.msg if isinstance(exc, json.JSONDecodeError) else "body is not valid UTF-8"
        raise ValidationError(f"Invalid JSON: {message}", field="body")

    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", field="body")
    return data


def validate_unit(value: Any, field: str = "unit") -> str:
    unit = sanitize_string(value, field)
    if unit is None:
        return DEFAULT_UNIT
    unit = unit.lower()
    if unit not in {member.value for member in Unit}:
        allowed = ", ".join(member.value for member in Unit)
        raise ValidationError(f"{field} must be one of: {allowed}", field=field)
    return unit


def validate_cart(value: Any) -> List[CartItem]:
    """Validate a whole cart; any bad line rejects the entire cart."""
    if not isinstance(value, list) or not value:
        raise ValidationError("Invalid or empty cart", field="cart")

    items: List[CartItem] = []
    for index, raw in enumerate(value):
        prefix = f"cart[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{prefix} must be an object", field=prefix)

        for key in ("id", "qty", "price"):
            if raw.get(key) is None:
                raise ValidationError(f"{prefix}.{key} is required", field=f"{prefix}.{key}")

        product_id = parse_positive_id(raw["id"], field=f"{prefix}.id")
        qty = parse_number(raw["qty"], f"{prefix}.qty", maximum=MAX_QTY)
        if qty <= 0:
            raise ValidationError(f"{prefix}.qty must be greater than 0", field=f"{prefix}.qty")
        price = parse_number(raw["price"], f"{prefix}.price", maximum=MAX_PRICE)
        if price < 0:
            raise ValidationError(f"{prefix}.price must not be negative", field=f"{prefix}.price")

        name = sanitize_string(raw.get("name"), f"{prefix}.name", max_length=MAX_NAME_LENGTH) or ""
        unit = sanitize_string(raw.get("unit"), f"{prefix}.unit", max_length=MAX_UNIT_LABEL_LENGTH) or DEFAULT_UNIT

        items.append(CartItem(id=product_id, name=name, price=price, qty=qty, unit=unit))

    if cart_total(items) > MAX_ORDER_TOTAL:
        raise ValidationError(f"Order total must not exceed {MAX_ORDER_TOTAL:,.2f}", field="cart")
    return items


def validate_product_fields(data: Any, partial: bool = False) -> Dict[str, Any]:
    """Validate product fields for create (all defaults applied) or update (subset)."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", field="body")

    fields: Dict[str, Any] = {}

    if not partial or "name" in data:
        fields["name"] = sanitize_string(data.get("name"), "name", max_length=MAX_NAME_LENGTH, required=True)

    if not partial or "price" in data:
        raw_price = data.get("price")
        if raw_price is None or raw_price == "":
            raise ValidationError("price is required", field="price")
        price = parse_number(raw_price, "price", maximum=MAX_PRICE)
        if price <= 0:
            raise ValidationError("Price must be a positive number", field="price")
        fields["price"] = round(price, 2)

    if not partial or "description" in data:
        fields["description"] = sanitize_string(data.get("description"), "description", allow_empty=True) or ""

    if not partial or "image_url" in data:
        fields["image_url"] = sanitize_image_url(data.get("image_url"))

    if not partial or "unit" in data:
        fields["unit"] = validate_unit(data.get("unit"))

    if not partial or "stock_qty" in data:
        raw_stock = data.get("stock_qty")
        fields["stock_qty"] = DEFAULT_STOCK_QTY if raw_stock is None else parse_integer(
            raw_stock, "stock_qty", minimum=0, maximum=MAX_INTEGER)

    if not partial or "sort_order" in data:
        raw_sort = data.get("sort_order")
        fields["sort_order"] = DEFAULT_SORT_ORDER if raw_sort is None else parse_integer(
            raw_sort, "sort_order", minimum=1, maximum=MAX_INTEGER)

    if partial and not fields:
        raise ValidationError("No valid fields to update", field="body")

    return fields
