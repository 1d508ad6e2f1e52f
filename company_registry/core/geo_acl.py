"""Geo-IP access gate for mutating company routes.

The caller's IP is resolved to a country through a ``GeoLocator``; only
countries in the configured allow-set pass. A failed lookup never lets the
request through.
"""
from typing import FrozenSet, Iterable, Optional, Protocol

from fastapi import Depends, Request

from .context import RequestContext, get_request_context
from .errors import AccessDeniedError, DeadlineExceededError, UpstreamError


class GeoLocator(Protocol):
    def country_for_ip(self, ip: str, timeout_seconds: float = ...) -> str:
        ...


def client_ip(request: Request, trust_forwarded_for: bool = False) -> Optional[str]:
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return real_ip.strip()
    return request.client.host if request.client else None


class GeoACL:
    """FastAPI dependency enforcing the country allow-set."""

    def __init__(self, geolocator: GeoLocator, allowed_countries: Iterable[str], trust_forwarded_for: bool = False):
        self.geolocator = geolocator
        self.allowed_countries: FrozenSet[str] = frozenset(allowed_countries)
        self.trust_forwarded_for = trust_forwarded_for

    def is_allowed(self, country: str) -> bool:
        return country in self.allowed_countries

    async def __call__(self, request: Request, ctx: RequestContext = Depends(get_request_context)) -> str:
        ip = client_ip(request, self.trust_forwarded_for)
        if not ip:
            raise UpstreamError("cannot determine client IP for geo check")

        try:
            country = await ctx.run_blocking(self.geolocator.country_for_ip, ip, ctx.remaining())
        except DeadlineExceededError as e:
            # a lookup that runs out of time is a failed lookup, not a 504
            raise UpstreamError(f"geolocation lookup timed out for {ip}") from e
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"error fetching client IP country for {ip}: {e}") from e

        if not self.is_allowed(country):
            raise AccessDeniedError(f"non-allowed client country {country!r} for {ip}")

        ctx.logger.info(f"Validated client call country {country!r} for {ip}")
        request.state.client_country = country
        return country
