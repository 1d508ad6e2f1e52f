from __future__ import annotations

import asyncio
import time
from unittest.mock import Mock

import pytest
from starlette.requests import Request

from company_registry.core.context import RequestContext
from company_registry.core.errors import AccessDeniedError, DeadlineExceededError, UpstreamError
from company_registry.core.geo_acl import GeoACL, client_ip


def make_request(client=("9.9.9.9", 5555), headers=None):
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "POST", "path": "/v1/companies", "headers": raw_headers, "client": client})


def test_client_ip_uses_peer_address_by_default():
    request = make_request(headers={"X-Forwarded-For": "1.1.1.1"})
    assert client_ip(request) == "9.9.9.9"


def test_client_ip_prefers_first_forwarded_address_when_trusted():
    request = make_request(headers={"X-Forwarded-For": "1.1.1.1, 10.0.0.1"})
    assert client_ip(request, trust_forwarded_for=True) == "1.1.1.1"


def test_client_ip_falls_back_to_real_ip_header():
    request = make_request(headers={"X-Real-IP": "2.2.2.2"})
    assert client_ip(request, trust_forwarded_for=True) == "2.2.2.2"


def test_client_ip_without_peer():
    assert client_ip(make_request(client=None)) is None


def _acl(country=None, error=None):
    locator = Mock()
    if error is not None:
        locator.country_for_ip.side_effect = error
    else:
        locator.country_for_ip.return_value = country
    return GeoACL(locator, {"Cyprus"}), locator


def test_allowed_country_passes_and_is_recorded(request_ctx):
    acl, locator = _acl("Cyprus")
    request = make_request()
    assert asyncio.run(acl(request, request_ctx)) == "Cyprus"
    assert request.state.client_country == "Cyprus"
    assert locator.country_for_ip.call_args.args[0] == "9.9.9.9"


@pytest.mark.parametrize("country", ["Greece", "cyprus", "", "Cyprus "])
def test_other_countries_are_denied(request_ctx, country):
    acl, _ = _acl(country)
    with pytest.raises(AccessDeniedError):
        asyncio.run(acl(make_request(), request_ctx))


def test_lookup_failure_never_allows(request_ctx):
    acl, _ = _acl(error=RuntimeError("lookup failed"))
    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(acl(make_request(), request_ctx))
    assert not isinstance(excinfo.value, AccessDeniedError)


def test_lookup_timeout_is_a_plain_upstream_error():
    acl, _ = _acl(error=lambda ip, timeout: time.sleep(0.5) or "Cyprus")
    ctx = RequestContext.create("/test", timeout_seconds=0.05)
    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(acl(make_request(), ctx))
    assert type(excinfo.value) is UpstreamError
    assert isinstance(excinfo.value.__cause__, DeadlineExceededError)


def test_missing_client_ip_is_an_error(request_ctx):
    acl, locator = _acl("Cyprus")
    with pytest.raises(UpstreamError):
        asyncio.run(acl(make_request(client=None), request_ctx))
    locator.country_for_ip.assert_not_called()
