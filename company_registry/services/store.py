"""Storage interface for company records.

Implementations are synchronous; the company service runs them through the
request context so the request deadline applies. ``RecordNotFound`` is the
only storage outcome the service distinguishes; anything else is a backend
failure.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol


FRACTION_PATTERN = re.compile(r'\.(\d+)')


class RecordNotFound(LookupError):
    pass


@dataclass
class StoredCompany:
    id: str
    name: str
    code: str
    country: str
    website: str
    phone: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "country": self.country,
            "website": self.website,
            "phone": self.phone,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "StoredCompany":
        updated_at = row.get("updated_at")
        return cls(
            id=row["id"],
            name=row["name"],
            code=row["code"],
            country=row["country"],
            website=row["website"],
            phone=row["phone"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(updated_at) if updated_at else None,
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    # Postgres may render UTC as a trailing "Z" and trims trailing zeros from
    # the fraction; fromisoformat before 3.11 needs exactly 6 digits
    text = str(value).replace("Z", "+00:00")
    text = FRACTION_PATTERN.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


class CompanyStore(Protocol):
    def get(self, company_id: str) -> StoredCompany:
        ...

    def insert(self, company: StoredCompany) -> None:
        ...

    def update(self, company_id: str, fields: Dict[str, str], updated_at: datetime) -> None:
        ...

    def delete(self, company_id: str) -> None:
        ...

    def search(self, filters: Dict[str, str], skip: int, limit: int) -> List[StoredCompany]:
        ...

    def ping(self) -> None:
        ...
