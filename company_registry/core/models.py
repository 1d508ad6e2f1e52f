from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional


COMPANY_FIELDS = ("name", "code", "country", "website", "phone")


@dataclass(frozen=True)
class Company:
    """Company as returned to API callers."""

    id: str
    name: str
    code: str
    country: str
    website: str
    phone: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CompanyFields:
    """Validated fields for a new company. All five are required."""

    name: str
    code: str
    country: str
    website: str
    phone: str


@dataclass(frozen=True)
class CompanyPatch:
    """Validated partial update. ``None`` means the field is left untouched."""

    name: Optional[str] = None
    code: Optional[str] = None
    country: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None

    def supplied(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class SearchFilters:
    """Exact-match predicates; every supplied predicate must hold."""

    name: Optional[str] = None
    code: Optional[str] = None
    country: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None

    def supplied(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
