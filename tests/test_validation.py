import pytest
from hypothesis import given, strategies as st
from pydantic import ValidationError

from bookapi.models import Book, CreateBook, Envelope, thickness_for

VALID = {"title": "t", "release_year": 2000, "price": 0, "total_page": 1}


@given(st.integers(min_value=1, max_value=100))
def test_thin_up_to_one_hundred_pages(pages):
    assert thickness_for(pages) == "thin"


@given(st.integers(min_value=101, max_value=10**6))
def test_thick_above_one_hundred_pages(pages):
    assert thickness_for(pages) == "thick"


@given(st.integers().filter(lambda year: year < 1980 or year > 2024))
def test_create_book_rejects_release_year_out_of_range(year):
    with pytest.raises(ValidationError):
        CreateBook(**{**VALID, "release_year": year})


@given(st.integers(min_value=1980, max_value=2024))
def test_create_book_accepts_release_year_in_range(year):
    assert CreateBook(**{**VALID, "release_year": year}).release_year == year


@given(st.integers(max_value=-1))
def test_create_book_rejects_negative_price(price):
    with pytest.raises(ValidationError):
        CreateBook(**{**VALID, "price": price})


@given(st.integers(max_value=0))
def test_create_book_rejects_non_positive_page_count(pages):
    with pytest.raises(ValidationError):
        CreateBook(**{**VALID, "total_page": pages})


def test_create_book_defaults_optional_fields():
    book = CreateBook(**VALID)
    assert book.description == ""
    assert book.image_url == ""
    assert book.category_id is None


def test_create_book_requires_title():
    with pytest.raises(ValidationError):
        CreateBook(**{**VALID, "title": ""})


def test_envelope_omits_absent_fields():
    assert Envelope(message="ok").model_dump() == {"success": True, "message": "ok"}
    assert Envelope.failure("nope", "why").model_dump() == {"success": False, "message": "nope", "error": "why"}
    assert Envelope[list[int]](message="ok", data=[]).model_dump()["data"] == []


def test_book_serialization_drops_missing_category_name():
    fields = {
        "id": 1,
        "title": "t",
        "release_year": 2000,
        "price": 1,
        "total_page": 10,
        "thickness": "thin",
        "created_at": "2024-01-01T00:00:00Z",
        "created_by": "system",
        "modified_at": "2024-01-01T00:00:00Z",
        "modified_by": "system",
    }
    assert "category_name" not in Book(**fields).model_dump(mode="json")
    assert Book(**fields, category_id=3, category_name="Art").model_dump(mode="json")["category_name"] == "Art"
