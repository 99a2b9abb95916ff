"""
Correlates asynchronous sheet deliveries with the loads waiting on them.

The transport (HTTP or otherwise) is the host's business. It is handed a
request id chosen here, and later reports back exactly once per id with
`deliver(request_id, success, payload)`. Parsing then happens synchronously
inside `deliver`, and whoever is awaiting that id gets the LoadResult, or
None when the transport failed.
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from typing import Dict, Optional, Protocol, runtime_checkable

from sheetval.sheet_errors import TransportFailure
from sheetval.sheet_runtime import LoadResult, SheetLoader

logger = logging.getLogger(__name__)

MAX_KEPT_FAILURES = 256


@runtime_checkable
class SheetTransport(Protocol):
    """What the host's fetcher must provide."""

    def submit(self, request_id: str, sheet_id: str, tab_id: str) -> None:
        """Starts a fetch that will be delivered under `request_id`.

        Delivery may happen at any point, including before submit returns.
        """
        ...


class PendingLoads:
    """A table of in-flight requests keyed by request id."""

    def __init__(self, loader: Optional[SheetLoader] = None,
                 max_failures: int = MAX_KEPT_FAILURES):
        self.loader = loader or SheetLoader()
        self.max_failures = max_failures
        self._pending: Dict[str, asyncio.Future] = {}
        self._failures: 'OrderedDict[str, TransportFailure]' = OrderedDict()

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def register(self, request_id: str) -> asyncio.Future:
        """Creates the pending entry for `request_id` on the running loop."""
        if request_id in self._pending:
            raise KeyError(f"request {request_id!r} is already pending")
        fut = asyncio.get_running_loop().create_future()
        self._pending[request_id] = fut
        return fut

    def deliver(self, request_id: str, success: bool, payload: Optional[str] = None,
                reason: Optional[str] = None) -> Optional[LoadResult]:
        """Completes a request. Returns the LoadResult handed to the waiter.

        Unknown or already-completed ids are logged and ignored. If loading
        raises, the waiter receives the same exception.
        """
        fut = self._pending.pop(request_id, None)
        if fut is None:
            logger.warning("delivery for unknown or completed request %r ignored", request_id)
            return None
        if not success or payload is None:
            failure = TransportFailure(request_id, reason)
            logger.warning("%s", failure)
            self._remember_failure(failure)
            if not fut.done():
                fut.set_result(None)
            return None

        try:
            result = self.loader.load(payload)
        except Exception as e:
            if not fut.done():
                fut.set_exception(e)
            raise
        if not fut.done():
            fut.set_result(result)
        return result

    def _remember_failure(self, failure: TransportFailure):
        self._failures[failure.request_id] = failure
        self._failures.move_to_end(failure.request_id)
        while len(self._failures) > self.max_failures:
            self._failures.popitem(last=False)

    def take_failure(self, request_id: str) -> Optional[TransportFailure]:
        """Returns and forgets the transport failure recorded for `request_id`."""
        return self._failures.pop(request_id, None)

    def cancel(self, request_id: str) -> bool:
        """Drops a pending request; a later delivery for it is ignored."""
        fut = self._pending.pop(request_id, None)
        if fut is None:
            return False
        fut.cancel()
        return True

    async def wait(self, request_id: str) -> Optional[LoadResult]:
        fut = self._pending.get(request_id)
        if fut is None:
            raise KeyError(f"request {request_id!r} is not pending")
        return await fut

    async def request(self, transport: SheetTransport, sheet_id: str, tab_id: str,
                      request_id: Optional[str] = None) -> Optional[LoadResult]:
        """Submits a fetch through `transport` and waits for its delivery.

        The pending entry exists before `submit` is called, so a transport
        may deliver synchronously from inside it.
        """
        request_id = request_id or uuid.uuid4().hex
        fut = self.register(request_id)
        try:
            transport.submit(request_id, sheet_id, tab_id)
        except Exception:
            self.cancel(request_id)
            raise
        return await fut
