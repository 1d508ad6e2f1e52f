import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import urlopen

from ..core.config import Config


logger = logging.getLogger(__name__)


class GeoLookupError(RuntimeError):
    pass


@dataclass(frozen=True)
class LookupResult:
    ip: str
    type: Optional[str]
    country_code: Optional[str]
    country_name: Optional[str]


class IPAPIClient:
    """Minimal ipapi.com client resolving an IP address to its country."""

    def __init__(self, access_key: str | None = None, base_url: str | None = None, opener=urlopen):
        self.access_key = access_key if access_key is not None else Config.IPAPI_KEY
        self.base_url = (base_url or Config.IPAPI_BASE_URL).rstrip('/')
        self._open = opener

    def _lookup_url(self, ip: str) -> str:
        query = urlencode({"access_key": self.access_key, "format": 1})
        return f"{self.base_url}/{quote(ip, safe='')}?{query}"

    def lookup(self, ip: str, timeout_seconds: float = 10) -> LookupResult:
        try:
            with self._open(self._lookup_url(ip), timeout=timeout_seconds) as resp:
                status = getattr(resp, "status", 200)
                if status != 200:
                    raise GeoLookupError(f"ipapi bad status code {status}")
                payload: Dict[str, Any] = json.loads(resp.read())
        except GeoLookupError:
            raise
        except HTTPError as e:
            raise GeoLookupError(f"ipapi bad status code {e.code}") from e
        except (URLError, TimeoutError, OSError) as e:
            raise GeoLookupError(f"error querying ipapi: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise GeoLookupError(f"error decoding ipapi response: {e}") from e

        if not isinstance(payload, dict):
            raise GeoLookupError("unexpected ipapi response shape")
        if payload.get("success") is False:
            error = payload.get("error") or {}
            raise GeoLookupError(f"ipapi error {error.get('code')}: {error.get('info') or error.get('type')}")

        return LookupResult(
            ip=payload.get("ip") or ip,
            type=payload.get("type"),
            country_code=payload.get("country_code"),
            country_name=payload.get("country_name"),
        )

    def country_for_ip(self, ip: str, timeout_seconds: float = 10) -> str:
        result = self.lookup(ip, timeout_seconds=timeout_seconds)
        if not result.country_name:
            raise GeoLookupError(f"no country resolved for {ip}")
        logger.debug(f"Resolved {ip} to {result.country_name}")
        return result.country_name
