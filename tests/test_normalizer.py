"""Tests for raw record normalization and category inference."""

from decimal import Decimal

import pytest

from valdor.menu import UNNAMED_ITEM, CandidateRecord
from valdor.menu.normalizer import (
    CategoryPolicy,
    normalize,
    parse_price,
    resolve_field,
    to_payload,
)

CATEGORIES = [
    {"_id": "c-bev", "name": "Beverages"},
    {"_id": "c-rice", "name": "Rice & Biriyani"},
    {"_id": "c-main", "name": "Main Course"},
    {"_id": "c-des", "name": "Desserts"},
]


class TestTotality:
    @pytest.mark.parametrize(
        "raw",
        [
            {},
            {"price": "abc"},
            {"price": None, "name": None},
            {"price": -20, "name": ""},
            {"price": ["not", "a", "number"]},
            {"price": float("nan")},
            {"price": True},
            {"confidence": "very", "ingredients": 42, "isVeg": "maybe"},
            None,
            "just a string",
            [1, 2, 3],
        ],
    )
    def test_never_raises(self, raw):
        record = normalize(raw)
        assert isinstance(record, CandidateRecord)
        assert record.price >= 0
        assert record.name_english is not None
        assert record.display_name

    def test_missing_name_displays_placeholder(self):
        record = normalize({"price": 100})
        assert record.name_english == ""
        assert record.display_name == UNNAMED_ITEM


class TestAliases:
    def test_first_present_alias_wins(self):
        raw = {"name": "Fallback", "name_english": "Primary", "desc": "d", "priceLKR": 300}
        record = normalize(raw)
        assert record.name_english == "Primary"
        assert record.description == "d"
        assert record.price == Decimal("300")

    def test_blank_values_are_skipped(self):
        raw = {"name_english": "  ", "name": "Dosa", "price": None, "priceLKR": "250"}
        assert resolve_field(raw, "name_english") == "Dosa"
        assert resolve_field(raw, "price") == "250"

    def test_full_record(self):
        raw = {
            "name_english": "Devilled Chicken",
            "name_tamil": "டெவில் சிக்கன்",
            "description_english": "Spicy stir-fried chicken",
            "price": "LKR 1,250.00",
            "ingredients": ["chicken", "chilli"],
            "dietaryTags": ["halal"],
            "isVeg": False,
            "isSpicy": "yes",
            "confidence": 0.92,
            "cookingTime": "25",
        }
        record = normalize(raw)
        assert record.name_local == "டெவில் சிக்கன்"
        assert record.description == "Spicy stir-fried chicken"
        assert record.price == Decimal("1250.00")
        assert record.category == "Chicken"
        assert record.ingredients == ["chicken", "chilli"]
        assert record.dietary_tags == {"halal"}
        assert record.is_vegetarian is False
        assert record.is_spicy is True
        assert record.confidence == pytest.approx(92.0)
        assert record.cooking_time == 25

    def test_comma_separated_ingredients(self):
        record = normalize({"name": "Salad", "ingredients": "lettuce, tomato,,"})
        assert record.ingredients == ["lettuce", "tomato"]


class TestParsePrice:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (450, Decimal("450")),
            (12.5, Decimal("12.5")),
            ("Rs. 450", Decimal("450")),
            ("LKR 1,250.00", Decimal("1250.00")),
            ("free", Decimal("0")),
            (-5, Decimal("0")),
            ("-5", Decimal("0")),
            (None, Decimal("0")),
            (False, Decimal("0")),
            (float("inf"), Decimal("0")),
        ],
    )
    def test_values(self, value, expected):
        assert parse_price(value) == expected


class TestCategoryPolicy:
    def test_keyword_order(self):
        policy = CategoryPolicy()
        assert policy.infer("Chicken Fried Rice") == "Rice"
        assert policy.infer("Chicken Curry") == "Curry"
        assert policy.infer("Mystery Dish") == "Main Course"

    def test_keyword_matches_at_word_start_only(self):
        policy = CategoryPolicy()
        assert "beverages" not in policy.matching_keys("Pepper Steak")
        assert "beverages" in policy.matching_keys("Ginger Tea")

    def test_explicit_category_wins(self):
        record = normalize({"name": "Chicken Curry", "category": "c-des"}, CATEGORIES)
        assert record.category == "c-des"

    def test_category_object_reduced_to_id(self):
        record = normalize({"name": "Kottu", "category": {"_id": "c-x", "name": "Street"}})
        assert record.category == "c-x"

    def test_keyword_match_against_category_list(self):
        policy = CategoryPolicy()
        assert policy.infer("Mutton Biriyani", CATEGORIES) == "c-rice"
        assert policy.infer("Iced Coffee", CATEGORIES) == "c-bev"

    def test_main_course_fallback(self):
        assert CategoryPolicy().infer("Mystery Dish", CATEGORIES) == "c-main"

    def test_first_non_beverage_fallback(self):
        categories = [{"_id": "b", "name": "Drinks"}, {"_id": "s", "name": "Specials"}]
        assert CategoryPolicy().infer("Mystery Dish", categories) == "s"

    def test_first_category_fallback(self):
        categories = [{"_id": "b1", "name": "Hot Drinks"}, {"_id": "b2", "name": "Beverages"}]
        assert CategoryPolicy().infer("Mystery Dish", categories) == "b1"

    def test_swappable_policy(self):
        policy = CategoryPolicy(keywords=(("street food", ("kottu",)),), default_category="Other")
        assert policy.infer("Cheese Kottu") == "Street Food"
        assert policy.infer("Chicken Curry") == "Other"


def test_to_payload():
    record = CandidateRecord(
        name_english=" Egg Hopper ",
        name_local="முட்டை அப்பம்",
        price=Decimal("120.50"),
        category="c-main",
        dietary_tags={"vegetarian", "gluten-free"},
        is_vegetarian=True,
    )
    payload = to_payload(record)
    assert payload["name"] == "Egg Hopper"
    assert payload["price"] == 120.5
    assert payload["category"] == "c-main"
    assert payload["dietaryTags"] == ["gluten-free", "vegetarian"]
    assert payload["isVeg"] is True
    assert payload["isAvailable"] is True
    assert payload["cookingTime"] == 30
    assert payload["nameLocal"] == "முட்டை அப்பம்"
