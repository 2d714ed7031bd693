"""
Unit tests for request sanitization and validation.
"""

import pytest

from service_storefront.app.validation.sanitizer import (
    MAX_ID,
    MAX_OFFSET,
    MAX_PRICE,
    MAX_QTY,
    normalize_endpoint,
    parse_bool_param,
    parse_int_param,
    parse_json_body,
    parse_positive_id,
    sanitize_image_url,
    sanitize_phone,
    sanitize_string,
    validate_cart,
    validate_product_fields,
    validate_unit,
)
from shared.errors import ValidationError


class TestStrings:
    """String sanitization."""

    def test_trims_and_strips_markup(self):
        assert sanitize_string("  <b>Rice</b>\x00 ", "name") == "Rice"

    def test_empty_after_trim_is_absent(self):
        assert sanitize_string("   ", "name") is None

    def test_empty_allowed_when_optional(self):
        assert sanitize_string("  ", "description", allow_empty=True) == ""

    def test_required_missing(self):
        with pytest.raises(ValidationError) as exc:
            sanitize_string("<p></p>", "name", required=True)
        assert exc.value.field == "name"

    def test_too_long(self):
        with pytest.raises(ValidationError) as exc:
            sanitize_string("x" * 256, "name", max_length=255)
        assert "too long" in exc.value.message


class TestEndpoint:
    """Endpoint normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("products", "products"),
        ("/admin/product/", "admin/product"),
        ("admin/products;DROP TABLE", "admin/productsDROPTABLE"),
        ("../status", "status"),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_endpoint(raw) == expected


class TestNumbers:
    """Identifier and numeric parameters."""

    @pytest.mark.parametrize("value,expected", [("7", 7), (" 12 ", 12), (3, 3)])
    def test_positive_id(self, value, expected):
        assert parse_positive_id(value) == expected

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "1.5", 0, True, 2.0])
    def test_invalid_id(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_positive_id(value)
        assert exc.value.message == "Invalid id"
        assert exc.value.field == "id"

    def test_id_beyond_storage_range(self):
        assert parse_positive_id(MAX_ID) == MAX_ID
        with pytest.raises(ValidationError) as exc:
            parse_positive_id("99999999999")
        assert exc.value.message == "Invalid id"

    def test_missing_id(self):
        with pytest.raises(ValidationError) as exc:
            parse_positive_id(None)
        assert exc.value.message == "Required parameter missing: id"

    def test_int_param_default_and_cap(self):
        assert parse_int_param({}, "limit", 10, minimum=1, maximum=100) == 10
        assert parse_int_param({"limit": "500"}, "limit", 10, minimum=1, maximum=100) == 100
        assert parse_int_param({"limit": "5"}, "limit", 10, minimum=1, maximum=100) == 5

    def test_offset_is_capped(self):
        params = {"offset": "99999999999999999999"}
        assert parse_int_param(params, "offset", 0, minimum=0, maximum=MAX_OFFSET) == MAX_OFFSET

    @pytest.mark.parametrize("raw", ["0", "-3", "ten", "2.5"])
    def test_int_param_rejects_malformed(self, raw):
        with pytest.raises(ValidationError) as exc:
            parse_int_param({"limit": raw}, "limit", 10, minimum=1)
        assert exc.value.field == "limit"

    @pytest.mark.parametrize("raw,expected", [
        ("1", True), ("TRUE", True), ("yes", True), ("on", True),
        ("0", False), ("false", False), ("maybe", False),
    ])
    def test_bool_param(self, raw, expected):
        assert parse_bool_param({"detailed": raw}, "detailed") is expected

    def test_bool_param_default(self):
        assert parse_bool_param({}, "detailed") is False


class TestPhone:
    """Phone number validation."""

    def test_keeps_digits_plus_and_spaces(self):
        assert sanitize_phone("+91 (911) 229-5256") == "+91 911 2295256"

    def test_absent_phone(self):
        assert sanitize_phone(None) is None
        assert sanitize_phone("  ") is None

    @pytest.mark.parametrize("value", ["12345", "+91 abc", "phone"])
    def test_too_few_digits(self, value):
        with pytest.raises(ValidationError) as exc:
            sanitize_phone(value)
        assert exc.value.field == "phone"


class TestJsonBody:
    """JSON body parsing."""

    def test_valid_object(self):
        assert parse_json_body(b'{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("raw", [b"", b"   "])
    def test_empty_body_is_an_error(self, raw):
        with pytest.raises(ValidationError) as exc:
            parse_json_body(raw)
        assert exc.value.message == "Empty request body"

    def test_malformed_json(self):
        with pytest.raises(ValidationError) as exc:
            parse_json_body(b"{not json")
        assert exc.value.message.startswith("Invalid JSON")
        assert exc.value.field == "body"

    def test_non_object_body(self):
        with pytest.raises(ValidationError):
            parse_json_body(b"[1, 2]")


class TestCart:
    """Cart validation."""

    def test_valid_cart(self):
        items = validate_cart([
            {"id": 1, "qty": 2, "price": 120, "name": "<i>Rice</i>"},
            {"id": "2", "qty": "0.5", "price": "0", "unit": "packet"},
        ])

        assert [item.id for item in items] == [1, 2]
        assert items[0].name == "Rice"
        assert items[0].unit == "kg"
        assert items[1].qty == 0.5
        assert items[1].price == 0.0
        assert items[1].unit == "packet"

    @pytest.mark.parametrize("cart", [None, [], {}, "cart"])
    def test_missing_or_empty_cart(self, cart):
        with pytest.raises(ValidationError) as exc:
            validate_cart(cart)
        assert exc.value.message == "Invalid or empty cart"

    @pytest.mark.parametrize("item,field", [
        ({"qty": 1, "price": 1}, "cart[1].id"),
        ({"id": 1, "price": 1}, "cart[1].qty"),
        ({"id": 1, "qty": 1}, "cart[1].price"),
        ({"id": 1, "qty": 0, "price": 1}, "cart[1].qty"),
        ({"id": 1, "qty": -2, "price": 1}, "cart[1].qty"),
        ({"id": 1, "qty": 1, "price": -0.01}, "cart[1].price"),
        ({"id": 1, "qty": "lots", "price": 1}, "cart[1].qty"),
        ({"id": 1, "qty": 10, "price": 1e308}, "cart[1].price"),
        ({"id": 1, "qty": MAX_QTY + 1, "price": 1}, "cart[1].qty"),
        ({"id": 2 ** 31, "qty": 1, "price": 1}, "cart[1].id"),
    ])
    def test_one_bad_item_rejects_whole_cart(self, item, field):
        cart = [{"id": 1, "qty": 1, "price": 10}, item]
        with pytest.raises(ValidationError) as exc:
            validate_cart(cart)
        assert exc.value.field == field


    def test_total_beyond_storage_range(self):
        cart = [{"id": index, "qty": MAX_QTY, "price": MAX_PRICE} for index in (1, 2)]
        with pytest.raises(ValidationError) as exc:
            validate_cart(cart)
        assert exc.value.field == "cart"


class TestProductFields:
    """Product create/update validation."""

    def test_create_applies_defaults(self):
        fields = validate_product_fields({"name": " Jaggery ", "price": "65.5"})

        assert fields == {
            "name": "Jaggery",
            "price": 65.5,
            "description": "",
            "image_url": "",
            "unit": "kg",
            "stock_qty": 1000,
            "sort_order": 99,
        }

    def test_create_requires_name_and_price(self):
        with pytest.raises(ValidationError) as exc:
            validate_product_fields({"price": 10})
        assert exc.value.field == "name"

        with pytest.raises(ValidationError) as exc:
            validate_product_fields({"name": "Salt"})
        assert exc.value.field == "price"

    @pytest.mark.parametrize("price", [0, -5, "0"])
    def test_price_must_be_positive(self, price):
        with pytest.raises(ValidationError) as exc:
            validate_product_fields({"name": "Salt", "price": price})
        assert exc.value.message == "Price must be a positive number"

    @pytest.mark.parametrize("fields,field", [
        ({"price": 1e308}, "price"),
        ({"price": MAX_PRICE + 1}, "price"),
        ({"stock_qty": 2 ** 31}, "stock_qty"),
        ({"sort_order": 2 ** 40}, "sort_order"),
    ])
    def test_values_beyond_storage_range(self, fields, field):
        with pytest.raises(ValidationError) as exc:
            validate_product_fields(fields, partial=True)
        assert exc.value.field == field

    def test_update_returns_only_supplied_fields(self):
        assert validate_product_fields({"price": 99, "unknown": 1}, partial=True) == {"price": 99.0}

    def test_update_without_fields(self):
        with pytest.raises(ValidationError) as exc:
            validate_product_fields({"active": True}, partial=True)
        assert exc.value.message == "No valid fields to update"

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_product_fields({"stock_qty": -1}, partial=True)
        assert exc.value.field == "stock_qty"

    def test_unit_is_case_insensitive_and_enumerated(self):
        assert validate_unit("BOX") == "box"
        assert validate_unit(None) == "kg"
        with pytest.raises(ValidationError):
            validate_unit("tonne")

    def test_image_url(self):
        assert sanitize_image_url("https://cdn.example.com/a.jpg") == "https://cdn.example.com/a.jpg"
        assert sanitize_image_url("images/<script>a.jpg") == "images/scripta.jpg"
        assert sanitize_image_url(None) == ""
