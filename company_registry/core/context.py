"""Per-request context: correlation id, bound logger and deadline.

A ``RequestContext`` is built by the context middleware for every inbound
call and passed explicitly to the company service and the collaborators it
reaches. Blocking collaborator calls go through ``run_blocking`` so that the
request deadline bounds them.
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, MutableMapping, Tuple, TypeVar

from fastapi import Request

from .errors import DeadlineExceededError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestLogger(logging.LoggerAdapter):
    """Prefixes every message with the request id and route path."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return f"[{self.extra['request_id']}] {self.extra['path']} - {msg}", kwargs


@dataclass(frozen=True)
class RequestContext:
    request_id: str
    path: str
    deadline: float
    logger: RequestLogger = field(repr=False)

    @classmethod
    def create(cls, path: str, timeout_seconds: float, base_logger: logging.Logger | None = None) -> "RequestContext":
        request_id = str(uuid.uuid4())
        bound = RequestLogger(base_logger or logger, {"request_id": request_id, "path": path})
        return cls(
            request_id=request_id,
            path=path,
            deadline=time.monotonic() + timeout_seconds,
            logger=bound,
        )

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.deadline

    async def run_blocking(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking call in a worker thread, bounded by the deadline.

        Raises ``DeadlineExceededError`` if the deadline has already passed or
        elapses before the call returns. The worker thread is abandoned, not
        interrupted; its eventual result is discarded.
        """
        name = getattr(func, "__qualname__", repr(func))
        if self.expired():
            raise DeadlineExceededError(f"deadline passed before {name}")
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args, **kwargs), timeout=self.remaining())
        except asyncio.TimeoutError as e:
            self.logger.error(f"Deadline exceeded waiting for {name}")
            raise DeadlineExceededError(f"deadline exceeded in {name}") from e


def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency returning the context attached by the middleware."""
    return request.state.ctx
