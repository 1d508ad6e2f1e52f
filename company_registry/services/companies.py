import uuid
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from ..core.context import RequestContext
from ..core.errors import NotFoundError, UpstreamError
from ..core.models import Company, CompanyFields, CompanyPatch, SearchFilters
from .store import CompanyStore, RecordNotFound, StoredCompany


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_company_id() -> str:
    return str(uuid.uuid4())


def _to_company(stored: StoredCompany) -> Company:
    return Company(
        id=stored.id,
        name=stored.name,
        code=stored.code,
        country=stored.country,
        website=stored.website,
        phone=stored.phone,
    )


class CompanyService:
    """Maps validated input onto storage calls and storage outcomes onto
    the API error taxonomy.

    Every operation takes the request context; storage calls run through
    ``ctx.run_blocking`` so they are abandoned once the deadline passes.
    """

    def __init__(
        self,
        store: CompanyStore,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_company_id,
    ):
        self.store = store
        self._clock = clock
        self._new_id = id_factory

    async def _call(
        self,
        ctx: RequestContext,
        action: str,
        func: Callable[..., Any],
        *args: Any,
        company_id: Optional[str] = None,
    ) -> Any:
        try:
            return await ctx.run_blocking(func, *args)
        except UpstreamError:
            raise
        except RecordNotFound as e:
            if company_id is None:
                raise UpstreamError(f"unexpected not-found while {action}") from e
            raise NotFoundError("Company", company_id) from e
        except Exception as e:
            raise UpstreamError(f"storage error while {action}: {e}") from e

    async def search(self, ctx: RequestContext, filters: SearchFilters, skip: int, limit: int) -> List[Company]:
        predicates = filters.supplied()
        ctx.logger.info(f"Searching companies filters={predicates} skip={skip} limit={limit}")
        results = await self._call(ctx, "searching companies", self.store.search, predicates, skip, limit)
        return [_to_company(stored) for stored in results]

    async def get(self, ctx: RequestContext, company_id: str) -> Company:
        ctx.logger.info(f"Fetching company {company_id}")
        stored = await self._call(
            ctx, f"fetching company {company_id}", self.store.get, company_id, company_id=company_id
        )
        return _to_company(stored)

    async def create(self, ctx: RequestContext, fields: CompanyFields) -> str:
        stored = StoredCompany(
            id=self._new_id(),
            name=fields.name,
            code=fields.code,
            country=fields.country,
            website=fields.website,
            phone=fields.phone,
            created_at=self._clock(),
            updated_at=None,
        )
        await self._call(ctx, "creating company", self.store.insert, stored)
        ctx.logger.info(f"Created company {stored.id}")
        return stored.id

    async def update(self, ctx: RequestContext, company_id: str, patch: CompanyPatch) -> None:
        supplied = patch.supplied()
        ctx.logger.info(f"Updating company {company_id} fields={sorted(supplied)}")
        await self._call(
            ctx,
            f"updating company {company_id}",
            self.store.update,
            company_id,
            supplied,
            self._clock(),
            company_id=company_id,
        )

    async def delete(self, ctx: RequestContext, company_id: str) -> None:
        await self._call(
            ctx, f"deleting company {company_id}", self.store.delete, company_id, company_id=company_id
        )
        ctx.logger.info(f"Deleted company {company_id}")

    async def ping(self, ctx: RequestContext) -> None:
        await self._call(ctx, "pinging storage", self.store.ping)
