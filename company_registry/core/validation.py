import json
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from fastapi import Request

from .countries import is_valid_country
from .errors import FieldValidationError, ValidationError
from .models import COMPANY_FIELDS, CompanyFields, CompanyPatch


MIN_NAME_LENGTH = 4
MIN_CODE_LENGTH = 2
NAME_PATTERN = re.compile(r'[A-Za-z ]+')
CODE_PATTERN = re.compile(r'[A-Z]+')
DEFAULT_SEARCH_LIMIT = 20
MIN_SEARCH_LIMIT = 2


def validate_name(name: str) -> str:
    name = name.strip()
    if len(name) < MIN_NAME_LENGTH:
        raise FieldValidationError("name", f"company name must be at least {MIN_NAME_LENGTH} characters")
    if not NAME_PATTERN.fullmatch(name):
        raise FieldValidationError("name", "company name can contain only letters and spaces")
    return name


def validate_code(code: str) -> str:
    code = code.strip()
    if len(code) < MIN_CODE_LENGTH:
        raise FieldValidationError("code", f"company code must be at least {MIN_CODE_LENGTH} characters")
    if not CODE_PATTERN.fullmatch(code):
        raise FieldValidationError("code", "company code can contain only uppercase letters")
    return code


def validate_country(country: str) -> str:
    if not is_valid_country(country):
        raise FieldValidationError("country", "invalid country")
    return country


def validate_website(website: str) -> str:
    if any(ch.isspace() for ch in website):
        raise FieldValidationError("website", "website is not valid url")
    try:
        parsed = urlparse(website)
    except ValueError:
        raise FieldValidationError("website", "website is not valid url")
    if not parsed.scheme or not parsed.netloc:
        raise FieldValidationError("website", "website is not valid url")
    return website


def validate_phone(phone: str) -> str:
    # Stored verbatim; no phone format is enforced.
    return phone


FIELD_VALIDATORS: Dict[str, Callable[[str], str]] = {
    "name": validate_name,
    "code": validate_code,
    "country": validate_country,
    "website": validate_website,
    "phone": validate_phone,
}


def _validate_fields(payload: Mapping[str, Any], required: bool) -> Tuple[Dict[str, str], List[Dict[str, str]]]:
    values: Dict[str, str] = {}
    errors: List[Dict[str, str]] = []
    for field in COMPANY_FIELDS:
        raw = payload.get(field)
        if raw is None:
            if not required:
                continue
            raw = ""
        if not isinstance(raw, str):
            errors.append(FieldValidationError(field, f"{field} must be a string").to_dict())
            continue
        try:
            values[field] = FIELD_VALIDATORS[field](raw)
        except FieldValidationError as e:
            errors.append(e.to_dict())
    return values, errors


def validate_company_fields(payload: Mapping[str, Any]) -> CompanyFields:
    """Validate a create payload, collecting every field failure."""
    values, errors = _validate_fields(payload, required=True)
    if errors:
        raise ValidationError(errors)
    return CompanyFields(**values)


def validate_company_patch(payload: Mapping[str, Any]) -> CompanyPatch:
    """Validate only the supplied fields of an update payload."""
    values, errors = _validate_fields(payload, required=False)
    if errors:
        raise ValidationError(errors)
    return CompanyPatch(**values)


def parse_unsigned(name: str, value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    if not (value.isascii() and value.isdigit()):
        raise ValidationError([{"field": name, "message": f"{name} must be an unsigned integer"}])
    return int(value)


def parse_pagination(cursor: Optional[str], limit: Optional[str]) -> Tuple[int, int]:
    skip = parse_unsigned("cursor", cursor, 0)
    parsed_limit = parse_unsigned("limit", limit, DEFAULT_SEARCH_LIMIT)
    if parsed_limit < MIN_SEARCH_LIMIT:
        raise ValidationError([{"field": "limit", "message": f"limit must be at least {MIN_SEARCH_LIMIT}"}])
    return skip, parsed_limit


async def read_json_object(request: Request) -> Dict[str, Any]:
    body = await request.body()
    try:
        payload = json.loads(body) if body else None
    except (ValueError, RecursionError):
        # JSONDecodeError and UnicodeDecodeError are ValueErrors; deeply
        # nested arrays exhaust the decoder's recursion limit
        payload = None
    if not isinstance(payload, dict):
        raise ValidationError([{"field": "body", "message": "request body must be a JSON object"}])
    return payload
