"""Tests for local upload / URL / edit validation."""

from decimal import Decimal

import pytest

from valdor.menu import CandidateRecord
from valdor.menu.validation import (
    MAX_UPLOAD_BYTES,
    ValidationError,
    confidence_level,
    image_quality_hint,
    validate_patch,
    validate_upload,
    validate_url,
)


class TestValidateUpload:
    def test_accepts_jpeg_by_extension(self):
        assert validate_upload("menu.jpg", 2048) == "image/jpeg"

    def test_accepts_explicit_type(self):
        assert validate_upload("upload", 2048, "IMAGE/WEBP") == "image/webp"

    def test_rejects_pdf(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_upload("menu.pdf", 2048)
        assert exc_info.value.field == "file"
        assert "Invalid file type" in exc_info.value.message

    def test_heic_only_when_allowed(self):
        with pytest.raises(ValidationError):
            validate_upload("menu.heic", 2048, "image/heic")
        assert validate_upload("menu.heic", 2048, "image/heic", allow_heic=True) == "image/heic"

    def test_size_ceiling(self):
        assert validate_upload("menu.png", MAX_UPLOAD_BYTES) == "image/png"
        with pytest.raises(ValidationError, match="File too large"):
            validate_upload("menu.png", MAX_UPLOAD_BYTES + 1)

    def test_custom_ceiling(self):
        with pytest.raises(ValidationError, match="File too large"):
            validate_upload("menu.png", 2000, max_bytes=1000)

    def test_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_upload("menu.png", 0)


def test_image_quality_hint():
    assert image_quality_hint(50 * 1024) == "low"
    assert image_quality_hint(200 * 1024) == "medium"
    assert image_quality_hint(2 * 1024 * 1024) == "high"


class TestValidateUrl:
    def test_valid(self):
        assert validate_url("  https://example.com/menu ") == "https://example.com/menu"

    @pytest.mark.parametrize("url", ["", "   ", None])
    def test_empty(self, url):
        with pytest.raises(ValidationError, match="Please enter a website URL"):
            validate_url(url)

    @pytest.mark.parametrize(
        "url", ["example.com/menu", "ftp://example.com", "https://", "not a url", "http:///path"]
    )
    def test_malformed(self, url):
        with pytest.raises(ValidationError) as exc_info:
            validate_url(url)
        assert exc_info.value.field == "url"


class TestValidatePatch:
    def test_cleans_values(self):
        record = CandidateRecord(name_english="Kottu", price=Decimal("800"))
        changes = validate_patch(
            record,
            {
                "name_english": "  Chicken Kottu ",
                "price": "950.50",
                "ingredients": "roti, chicken, , leeks",
                "dietary_tags": ["halal", " "],
            },
        )
        assert changes == {
            "name_english": "Chicken Kottu",
            "price": Decimal("950.50"),
            "ingredients": ["roti", "chicken", "leeks"],
            "dietary_tags": {"halal"},
        }

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_patch(CandidateRecord(name_english="Kottu"), {"name_english": "  "})
        assert exc_info.value.field == "name_english"

    def test_existing_empty_name_rejected_without_name_in_patch(self):
        with pytest.raises(ValidationError):
            validate_patch(CandidateRecord(), {"price": 10})

    @pytest.mark.parametrize("price", [-1, "abc", True, float("nan"), float("inf"), "Infinity"])
    def test_bad_price(self, price):
        with pytest.raises(ValidationError) as exc_info:
            validate_patch(CandidateRecord(name_english="Tea"), {"price": price})
        assert exc_info.value.field == "price"

    def test_unknown_field(self):
        with pytest.raises(ValidationError, match="Unknown field"):
            validate_patch(CandidateRecord(name_english="Tea"), {"colour": "red"})


def test_confidence_level():
    assert confidence_level(95) == "high"
    assert confidence_level(80) == "medium"
    assert confidence_level(65) == "low"
    assert confidence_level(10) == "very_low"
