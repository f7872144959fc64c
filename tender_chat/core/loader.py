import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from tender_chat.core.config import settings
from tender_chat.core.exceptions import LibraryLoadError, LibraryLoadTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

class ResourceLoader(Generic[T]):
    """Waits for a lazily available resource (chart engine, spreadsheet template).

    ``probe`` returns the ready resource or ``None``. ``load`` is triggered once,
    the first time the resource is found missing, and may be sync or async.
    Readiness is then polled every ``interval`` seconds, at most ``max_attempts``
    times and never longer than ``timeout`` seconds overall.

    Concurrent callers share one in-flight wait. ``cancel()`` tears the wait
    down (poll and timeout together); waiters receive ``CancelledError``.
    """

    def __init__(
        self,
        name: str,
        probe: Callable[[], Optional[T]],
        load: Optional[Callable[[], Union[Awaitable[Any], Any]]] = None,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.name = name
        self._probe = probe
        self._load = load
        self.interval = interval if interval is not None else settings.LIBRARY_POLL_INTERVAL_SECONDS
        self.max_attempts = max_attempts if max_attempts is not None else settings.LIBRARY_POLL_MAX_ATTEMPTS
        self.timeout = timeout if timeout is not None else settings.LIBRARY_LOAD_TIMEOUT_SECONDS
        self._in_flight: Optional[asyncio.Future] = None
        self._load_task: Optional[asyncio.Future] = None
        self._load_triggered = False

    @property
    def ready(self) -> bool:
        return self._probe() is not None

    async def acquire(self) -> T:
        """Return the resource, waiting (bounded) for it to become available."""
        resource = self._probe()
        if resource is not None:
            return resource

        if self._in_flight is None or self._in_flight.done():
            logger.debug(f"[ResourceLoader:{self.name}] Resource not ready, starting wait.")
            self._in_flight = asyncio.ensure_future(self._wait_with_timeout())
        else:
            logger.debug(f"[ResourceLoader:{self.name}] Joining in-flight wait.")

        # Shield so one impatient caller cannot cancel the wait for everyone else
        return await asyncio.shield(self._in_flight)

    def cancel(self) -> None:
        """Cancel any in-flight wait and pending load."""
        for task in (self._in_flight, self._load_task):
            if task is not None and not task.done():
                task.cancel()
        if self._in_flight is not None:
            logger.debug(f"[ResourceLoader:{self.name}] Wait cancelled.")
        self._in_flight = None

    async def _wait_with_timeout(self) -> T:
        try:
            return await asyncio.wait_for(self._poll_until_ready(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[ResourceLoader:{self.name}] Not ready after {self.timeout}s.")
            raise LibraryLoadTimeout(f"{self.name} loading timeout") from None

    def _trigger_load(self) -> None:
        if self._load is None or self._load_triggered:
            return
        self._load_triggered = True
        logger.info(f"[ResourceLoader:{self.name}] Resource absent, triggering one-time load.")
        try:
            result = self._load()
        except Exception as e:
            self._load_triggered = False  # allow a later acquire() to retry
            raise LibraryLoadError(f"Failed to load {self.name}: {e}") from e
        if inspect.isawaitable(result):
            self._load_task = asyncio.ensure_future(result)

    def _check_load_failure(self) -> None:
        task = self._load_task
        if task is None or not task.done() or task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._load_task = None
            self._load_triggered = False
            raise LibraryLoadError(f"Failed to load {self.name}: {error}") from error

    async def _poll_until_ready(self) -> T:
        self._trigger_load()
        for attempt in range(1, self.max_attempts + 1):
            resource = self._probe()
            if resource is not None:
                logger.debug(f"[ResourceLoader:{self.name}] Ready after {attempt} probe(s).")
                return resource
            self._check_load_failure()
            await asyncio.sleep(self.interval)

        # One last look in case the load finished during the final sleep
        resource = self._probe()
        if resource is not None:
            return resource
        self._check_load_failure()
        logger.warning(f"[ResourceLoader:{self.name}] Not ready after {self.max_attempts} attempts.")
        raise LibraryLoadTimeout(f"{self.name} did not become available after {self.max_attempts} attempts")
