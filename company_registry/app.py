import logging
import time
from datetime import datetime
from typing import Iterable, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .core.config import Config
from .core.context import RequestContext, get_request_context
from .core.errors import CompanyRegistryError
from .core.geo_acl import GeoACL, GeoLocator
from .core.middleware import (
    global_exception_handler,
    log_requests,
    registry_exception_handler,
    request_context,
    shutdown_gate,
)
from .core.models import SearchFilters
from .core.shutdown import ShutdownCoordinator
from .core.validation import (
    parse_pagination,
    read_json_object,
    validate_company_fields,
    validate_company_patch,
)
from .services.companies import CompanyService
from .services.ipapi import IPAPIClient
from .services.memory_store import InMemoryCompanyStore
from .services.store import CompanyStore
from .services.supabase_store import SupabaseCompanyStore

logger = logging.getLogger(__name__)


def default_store() -> CompanyStore:
    """Supabase in production, process memory in development mode."""
    if Config.is_development():
        logger.warning("Development mode: companies are kept in memory only")
        return InMemoryCompanyStore()
    return SupabaseCompanyStore()


def _filter_value(value: Optional[str]) -> Optional[str]:
    return value if value else None


def create_app(
    store: Optional[CompanyStore] = None,
    geolocator: Optional[GeoLocator] = None,
    allowed_countries: Optional[Iterable[str]] = None,
    request_timeout_seconds: Optional[float] = None,
    coordinator: Optional[ShutdownCoordinator] = None,
    trust_forwarded_for: Optional[bool] = None,
    allowed_origins: Optional[List[str]] = None,
) -> FastAPI:
    """Build the API with its collaborators.

    Anything not supplied is taken from ``Config``.
    """
    companies = CompanyService(store if store is not None else default_store())
    geo_acl = GeoACL(
        geolocator if geolocator is not None else IPAPIClient(),
        allowed_countries if allowed_countries is not None else Config.allowed_countries(),
        trust_forwarded_for=Config.TRUST_FORWARDED_FOR if trust_forwarded_for is None else trust_forwarded_for,
    )
    shutdown = coordinator if coordinator is not None else ShutdownCoordinator()
    timeout_seconds = request_timeout_seconds or Config.REQUEST_TIMEOUT_SECONDS
    origins = allowed_origins if allowed_origins is not None else Config.allowed_origins()

    app = FastAPI(title="Company Registry API")
    app.state.companies = companies
    app.state.geo_acl = geo_acl
    app.state.shutdown_coordinator = shutdown

    # Registered innermost first: shutdown gate -> context -> request log
    @app.middleware("http")
    async def _log_requests(request, call_next):
        return await log_requests(request, call_next)

    @app.middleware("http")
    async def _request_context(request, call_next):
        return await request_context(request, call_next, timeout_seconds)

    @app.middleware("http")
    async def _shutdown_gate(request, call_next):
        return await shutdown_gate(request, call_next, shutdown)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(CompanyRegistryError)
    async def _registry_exception_handler(request, exc):
        return await registry_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _global_exception_handler(request, exc):
        return await global_exception_handler(request, exc, origins)

    @app.get("/v1")
    async def liveness():
        return Response(status_code=200)

    @app.get("/v1/companies")
    async def list_companies(
        name: Optional[str] = None,
        code: Optional[str] = None,
        country: Optional[str] = None,
        website: Optional[str] = None,
        phone: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: Optional[str] = None,
        ctx: RequestContext = Depends(get_request_context),
    ):
        """Search companies by exact field values, paginated by cursor/limit."""
        skip, page_size = parse_pagination(cursor, limit)
        filters = SearchFilters(
            name=_filter_value(name),
            code=_filter_value(code),
            country=_filter_value(country),
            website=_filter_value(website),
            phone=_filter_value(phone),
        )
        results = await companies.search(ctx, filters, skip, page_size)
        return {"results": [company.to_dict() for company in results]}

    @app.get("/v1/companies/{company_id}")
    async def get_company(company_id: str, ctx: RequestContext = Depends(get_request_context)):
        company = await companies.get(ctx, company_id)
        return company.to_dict()

    @app.post("/v1/companies", dependencies=[Depends(geo_acl)])
    async def create_company(request: Request, ctx: RequestContext = Depends(get_request_context)):
        """Create a company. Every invalid field is reported in one response."""
        payload = await read_json_object(request)
        ctx.logger.info(f"Create company request: {payload}")
        fields = validate_company_fields(payload)
        company_id = await companies.create(ctx, fields)
        return JSONResponse(status_code=201, content={"id": company_id})

    @app.put("/v1/companies/{company_id}")
    async def update_company(company_id: str, request: Request, ctx: RequestContext = Depends(get_request_context)):
        """Apply a partial patch; fields absent from the body are untouched."""
        payload = await read_json_object(request)
        patch = validate_company_patch(payload)
        await companies.update(ctx, company_id, patch)
        return Response(status_code=200)

    @app.delete("/v1/companies/{company_id}", dependencies=[Depends(geo_acl)])
    async def delete_company(company_id: str, ctx: RequestContext = Depends(get_request_context)):
        await companies.delete(ctx, company_id)
        return Response(status_code=200)

    @app.get("/health")
    async def health_check(ctx: RequestContext = Depends(get_request_context)):
        """Basic health and storage checks for the API."""
        health_start_time = time.time()

        try:
            await companies.ping(ctx)
            health_duration = time.time() - health_start_time

            return {
                "status": "healthy",
                "service": "company-registry-api",
                "timestamp": datetime.now().isoformat(),
                "response_time_ms": round(health_duration * 1000, 2)
            }
        except CompanyRegistryError as e:
            health_duration = time.time() - health_start_time
            ctx.logger.error(f"Health check failed: {str(e)} - Duration: {health_duration:.1f}s")

            return JSONResponse(status_code=503, content={
                "status": "unhealthy",
                "service": "company-registry-api",
                "timestamp": datetime.now().isoformat(),
                "response_time_ms": round(health_duration * 1000, 2)
            })

    return app


app = create_app()
