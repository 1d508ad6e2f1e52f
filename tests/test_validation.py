from __future__ import annotations

import pytest

from company_registry.core.errors import FieldValidationError, ValidationError
from company_registry.core.models import CompanyFields, CompanyPatch
from company_registry.core.validation import (
    parse_pagination,
    validate_code,
    validate_company_fields,
    validate_company_patch,
    validate_country,
    validate_name,
    validate_phone,
    validate_website,
)


VALID_PAYLOAD = {
    "name": "Valid Name",
    "code": "VN",
    "country": "Cyprus",
    "website": "http://company.valid/",
    "phone": "79991234567",
}


def test_name_is_trimmed():
    assert validate_name("  Valid Name \n") == "Valid Name"


@pytest.mark.parametrize("name", ["", "abc", "   ab   ", "345678-12asd", "invalid1234name", "Ünïcode Name"])
def test_invalid_names(name):
    with pytest.raises(FieldValidationError) as excinfo:
        validate_name(name)
    assert excinfo.value.field == "name"


def test_name_validation_is_idempotent():
    for raw in ["  Valid Name ", "Acme", "Big Company Ltd"]:
        once = validate_name(raw)
        assert validate_name(once) == once


def test_code_is_trimmed():
    assert validate_code(" VN ") == "VN"


@pytest.mark.parametrize("code", ["", "A", "abcd", "V1", "V-N"])
def test_invalid_codes(code):
    with pytest.raises(FieldValidationError):
        validate_code(code)


def test_country_is_exact_match():
    assert validate_country("Cyprus") == "Cyprus"
    for bad in ["cyprus", " Cyprus", "atlantis", ""]:
        with pytest.raises(FieldValidationError):
            validate_country(bad)


@pytest.mark.parametrize("website", ["http://company.valid/", "https://example.com/path?q=1", "ftp://files.example.org"])
def test_valid_websites_are_unchanged(website):
    assert validate_website(website) == website


@pytest.mark.parametrize("website", ["", "here-should-be-a-link", "/relative/path", "http://", "http://bad host.com"])
def test_invalid_websites(website):
    with pytest.raises(FieldValidationError):
        validate_website(website)


def test_phone_is_passed_through():
    assert validate_phone("+7 (999) 123-45-67") == "+7 (999) 123-45-67"
    assert validate_phone("") == ""


def test_company_fields_valid_payload():
    fields = validate_company_fields(VALID_PAYLOAD)
    assert fields == CompanyFields(**VALID_PAYLOAD)


def test_company_fields_collects_every_error():
    payload = dict(VALID_PAYLOAD, name="invalid1234name", code="a", country="atlantis")
    with pytest.raises(ValidationError) as excinfo:
        validate_company_fields(payload)
    assert sorted(err["field"] for err in excinfo.value.errors) == ["code", "country", "name"]


def test_company_fields_missing_fields_are_errors():
    with pytest.raises(ValidationError) as excinfo:
        validate_company_fields({"phone": "123"})
    # name, code, country and website all fail as empty strings
    assert len(excinfo.value.errors) == 4


def test_company_fields_rejects_non_string_values():
    with pytest.raises(ValidationError) as excinfo:
        validate_company_fields(dict(VALID_PAYLOAD, phone=79991234567))
    assert excinfo.value.errors == [{"field": "phone", "message": "phone must be a string"}]


def test_patch_validates_only_supplied_fields():
    patch = validate_company_patch({"name": " New Name ", "country": None})
    assert patch == CompanyPatch(name="New Name")
    assert patch.supplied() == {"name": "New Name"}


def test_patch_with_invalid_field_is_rejected_whole():
    with pytest.raises(ValidationError) as excinfo:
        validate_company_patch({"name": "Good Name", "code": "bad"})
    assert len(excinfo.value.errors) == 1


def test_empty_patch_is_valid():
    assert validate_company_patch({}).supplied() == {}


def test_pagination_defaults():
    assert parse_pagination(None, None) == (0, 20)
    assert parse_pagination("", "") == (0, 20)


def test_pagination_parses_values():
    assert parse_pagination("40", "2") == (40, 2)


@pytest.mark.parametrize("cursor,limit", [("abc", None), ("-1", None), (None, "x"), (None, "1"), (None, "0"), ("1.5", None)])
def test_pagination_rejects_bad_values(cursor, limit):
    with pytest.raises(ValidationError):
        parse_pagination(cursor, limit)
