import pytest

from feedbridge.core.mapping import TRANSFORMS, apply_mapping, apply_transform, resolve_path
from feedbridge.core.schema import FieldMapping
from feedbridge.errors import MappingError


PRODUCT = {
    "supplier_pid": "0601-9H6-000",
    "prices": [{"price_amount": 149.9, "price_currency": "EUR"}],
    "details": {"dimensions": {"width": "12,5"}},
    "keywords": [],
    "ean": None,
}


class TestResolvePath:
    def test_flat_key(self):
        assert resolve_path(PRODUCT, "supplier_pid") == "0601-9H6-000"

    def test_nested_dicts(self):
        assert resolve_path(PRODUCT, "details.dimensions.width") == "12,5"

    def test_list_index(self):
        assert resolve_path(PRODUCT, "prices.0.price_currency") == "EUR"

    def test_missing_key_is_none(self):
        assert resolve_path(PRODUCT, "manufacturer_name") is None
        assert resolve_path(PRODUCT, "details.weight") is None

    def test_none_intermediate_is_none(self):
        assert resolve_path(PRODUCT, "ean.gtin") is None

    def test_scalar_cannot_be_traversed(self):
        with pytest.raises(MappingError, match="has no fields"):
            resolve_path(PRODUCT, "supplier_pid.length")

    def test_bad_list_index(self):
        with pytest.raises(MappingError, match="not a valid index"):
            resolve_path(PRODUCT, "prices.3.price_amount")
        with pytest.raises(MappingError):
            resolve_path(PRODUCT, "prices.first")


class TestTransforms:
    def test_registry_names(self):
        assert set(TRANSFORMS) == {
            "trim", "lower", "upper", "string", "number", "integer", "boolean", "split", "json",
        }

    @pytest.mark.parametrize("name, value, expected", [
        ("trim", "  Bosch  ", "Bosch"),
        ("lower", "EUR", "eur"),
        ("upper", "eur", "EUR"),
        ("string", 42, "42"),
        ("number", "149,90", 149.9),
        ("number", "12", 12),
        ("integer", "7.0", 7),
        ("boolean", "yes", True),
        ("boolean", "0", False),
        ("split", "Akku, Bohrer ,", ["Akku", "Bohrer"]),
        ("json", '{"a": [1, 2]}', {"a": [1, 2]}),
    ])
    def test_transform_values(self, name, value, expected):
        assert apply_transform(name, value) == expected

    def test_none_passes_through(self):
        for name in TRANSFORMS:
            assert apply_transform(name, None) is None

    def test_no_transform(self):
        assert apply_transform(None, " x ") == " x "

    def test_unknown_transform(self):
        with pytest.raises(MappingError, match="Unknown transform 'reverse'"):
            apply_transform("reverse", "abc")

    def test_failed_transform(self):
        with pytest.raises(MappingError, match="Transform 'number' failed"):
            apply_transform("number", "n/a")
        with pytest.raises(MappingError):
            apply_transform("boolean", "maybe")


class TestApplyMapping:
    def test_projects_in_order(self):
        mapping = [
            FieldMapping("supplier_pid", "sku"),
            FieldMapping("prices.0.price_amount", "price"),
            FieldMapping("details.dimensions.width", "width", "number"),
        ]
        assert apply_mapping(PRODUCT, mapping) == {
            "sku": "0601-9H6-000",
            "price": 149.9,
            "width": 12.5,
        }

    def test_last_mapping_wins(self):
        mapping = [
            FieldMapping("supplier_pid", "id"),
            FieldMapping("prices.0.price_currency", "id"),
        ]
        assert apply_mapping(PRODUCT, mapping) == {"id": "EUR"}

    def test_custom_lookup(self):
        mapping = [FieldMapping("a.b", "flat")]
        assert apply_mapping({"a.b": 1}, mapping, lookup=lambda r, key: r.get(key)) == {"flat": 1}

    def test_failure_raises_mapping_error(self):
        with pytest.raises(MappingError):
            apply_mapping(PRODUCT, [FieldMapping("supplier_pid", "x", "integer")])
