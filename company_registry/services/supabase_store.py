import logging
from datetime import datetime
from typing import Dict, List

from supabase import create_client, Client

from ..core.config import Config
from .store import RecordNotFound, StoredCompany


logger = logging.getLogger(__name__)


def get_client() -> Client:
    return create_client(Config.SUPABASE_URL, Config.SUPABASE_SERVICE_KEY)


class SupabaseCompanyStore:
    """Company records kept in a Supabase (PostgREST) table.

    Expected table columns: id (text, primary key), name, code, country,
    website, phone (text), created_at (timestamptz, not null),
    updated_at (timestamptz, nullable).
    """

    def __init__(self, table: str | None = None, client_factory=get_client):
        self.table = table or Config.SUPABASE_COMPANIES_TABLE
        self._client_factory = client_factory

    def _table(self):
        supabase: Client = self._client_factory()
        return supabase.table(self.table)

    def get(self, company_id: str) -> StoredCompany:
        try:
            result = self._table().select('*').eq('id', company_id).limit(1).execute()
        except Exception as e:
            logger.error(f"Failed to fetch company {company_id}: {e}")
            raise

        if not result.data:
            raise RecordNotFound(company_id)
        return StoredCompany.from_row(result.data[0])

    def insert(self, company: StoredCompany) -> None:
        try:
            self._table().insert(company.to_row()).execute()
        except Exception as e:
            logger.error(f"Failed to insert company {company.id}: {e}")
            raise

    def update(self, company_id: str, fields: Dict[str, str], updated_at: datetime) -> None:
        patch = dict(fields)
        patch['updated_at'] = updated_at.isoformat()
        try:
            result = self._table().update(patch).eq('id', company_id).execute()
        except Exception as e:
            logger.error(f"Failed to update company {company_id}: {e}")
            raise

        if not result.data:
            raise RecordNotFound(company_id)

    def delete(self, company_id: str) -> None:
        try:
            result = self._table().delete().eq('id', company_id).execute()
        except Exception as e:
            logger.error(f"Failed to delete company {company_id}: {e}")
            raise

        if not result.data:
            raise RecordNotFound(company_id)

    def search(self, filters: Dict[str, str], skip: int, limit: int) -> List[StoredCompany]:
        query = self._table().select('*')
        for column, value in filters.items():
            query = query.eq(column, value)
        try:
            result = (
                query
                .order('created_at')
                .range(skip, skip + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to search companies with {filters}: {e}")
            raise

        return [StoredCompany.from_row(row) for row in result.data or []]

    def ping(self) -> None:
        self._table().select('id').limit(1).execute()
