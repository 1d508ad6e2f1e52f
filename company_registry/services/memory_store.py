import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List

from .store import RecordNotFound, StoredCompany


class InMemoryCompanyStore:
    """Process-local store used in development mode and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._companies: Dict[str, StoredCompany] = {}

    def get(self, company_id: str) -> StoredCompany:
        with self._lock:
            company = self._companies.get(company_id)
            if company is None:
                raise RecordNotFound(company_id)
            return replace(company)

    def insert(self, company: StoredCompany) -> None:
        with self._lock:
            if company.id in self._companies:
                raise ValueError(f"Duplicate company id {company.id}")
            self._companies[company.id] = replace(company)

    def update(self, company_id: str, fields: Dict[str, str], updated_at: datetime) -> None:
        with self._lock:
            company = self._companies.get(company_id)
            if company is None:
                raise RecordNotFound(company_id)
            self._companies[company_id] = replace(company, updated_at=updated_at, **fields)

    def delete(self, company_id: str) -> None:
        with self._lock:
            if self._companies.pop(company_id, None) is None:
                raise RecordNotFound(company_id)

    def search(self, filters: Dict[str, str], skip: int, limit: int) -> List[StoredCompany]:
        with self._lock:
            matches = [
                replace(company)
                for company in self._companies.values()
                if all(getattr(company, key) == value for key, value in filters.items())
            ]
        return matches[skip:skip + limit]

    def ping(self) -> None:
        return None
