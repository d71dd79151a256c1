"""Headless Chromium process management.

One ``EngineHandle`` wraps one launched browser. ``EngineProcessManager``
launches it with bounded retries and guarantees it is closed again,
whatever happens to the conversion in between.
"""

from __future__ import annotations

import asyncio
import errno
import itertools
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from playwright.async_api import async_playwright

from resume_press.config import EngineConfig
from resume_press.exceptions import EngineLaunchError

logger = logging.getLogger(__name__)

# Messages that mean the binary or a resource is momentarily unavailable,
# typically a freshly unpacked Chromium still being written (ETXTBSY).
_BUSY_MARKERS = (
    "etxtbsy",
    "text file busy",
    "eagain",
    "resource temporarily unavailable",
)

_BUSY_ERRNOS = {errno.ETXTBSY, errno.EAGAIN}

_handle_ids = itertools.count(1)


class EngineState(str, Enum):
    LAUNCHING = "launching"
    READY = "ready"
    BUSY = "busy"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class EngineHandle:
    """A running browser instance owned by a single conversion."""

    def __init__(self, browser: Any, driver: Any = None, config: Optional[EngineConfig] = None):
        self.id = next(_handle_ids)
        self.browser = browser
        self.driver = driver
        self.config = config or EngineConfig()
        self.state = EngineState.READY

    def __repr__(self) -> str:
        return f"EngineHandle(id={self.id}, state={self.state.value})"

    @property
    def is_open(self) -> bool:
        return self.state in (EngineState.READY, EngineState.BUSY)

    def mark_failed(self) -> None:
        """Flag an open handle whose conversion failed; release still closes it."""
        if self.is_open:
            self.state = EngineState.FAILED

    async def new_page(self, viewport: Optional[dict] = None):
        """Open a page in a fresh browser context sized to ``viewport``."""
        viewport = viewport or self.config.default_viewport()
        self.state = EngineState.BUSY
        context = await self.browser.new_context(
            viewport={"width": int(viewport["width"]), "height": int(viewport["height"])},
            device_scale_factor=float(viewport.get("deviceScaleFactor", self.config.device_scale_factor)),
        )
        return await context.new_page()


Launcher = Callable[[EngineConfig], Awaitable[tuple]]


# Stop tasks for drivers that finished starting after their launch was
# cancelled; held so they are not garbage collected mid-flight.
_late_stops: set = set()


def _stop_late_driver(starting: asyncio.Future) -> None:
    if starting.cancelled() or starting.exception() is not None:
        return
    task = starting.get_loop().create_task(starting.result().stop())
    _late_stops.add(task)
    task.add_done_callback(_late_stops.discard)


async def _start_driver():
    """Start the Playwright driver.

    If the caller is cancelled (launch timeout) while the driver is still
    starting, the driver is stopped as soon as the start completes.
    """
    starting = asyncio.ensure_future(async_playwright().start())
    try:
        return await asyncio.shield(starting)
    except asyncio.CancelledError:
        starting.add_done_callback(_stop_late_driver)
        raise


async def launch_chromium(config: EngineConfig) -> tuple:
    """Start Playwright and launch Chromium. Returns ``(browser, driver)``."""
    driver = None
    try:
        driver = await _start_driver()
        browser = await driver.chromium.launch(
            args=config.launch_args(),
            headless=config.headless,
            executable_path=config.executable_path,
            timeout=config.launch_timeout * 1000,
        )
    except BaseException:
        if driver is not None:
            await driver.stop()
        raise
    return browser, driver


def _describe(exc: Optional[BaseException]) -> str:
    if exc is None:
        return "unknown error"
    return str(exc) or type(exc).__name__


def is_busy_error(exc: BaseException) -> bool:
    """True for "resource temporarily unavailable" failures worth a longer wait."""
    if isinstance(exc, OSError) and exc.errno in _BUSY_ERRNOS:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _BUSY_MARKERS)


class EngineProcessManager:
    """Acquire and release browser handles.

    Args:
        config: Engine settings; retry bound and backoff units come from here.
        launcher: Coroutine function ``(config) -> (browser, driver)``.
            Defaults to launching Chromium through Playwright.
        sleep: Awaitable delay function, replaceable in tests.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        launcher: Optional[Launcher] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or EngineConfig()
        self._launcher = launcher or launch_chromium
        self._sleep = sleep

    def backoff_delay(self, attempt: int, exc: BaseException) -> float:
        """Delay before the attempt after ``attempt`` (1-based) failed."""
        if is_busy_error(exc):
            return attempt * self.config.busy_backoff
        return self.config.retry_backoff

    async def acquire(self) -> EngineHandle:
        """Launch a browser, retrying up to ``max_launch_attempts`` times.

        Raises:
            EngineLaunchError: every attempt failed; chained from the last cause.
        """
        max_attempts = self.config.max_launch_attempts
        last_exc: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            logger.debug("Browser launch attempt %d/%d", attempt, max_attempts)
            try:
                browser, driver = await asyncio.wait_for(
                    self._launcher(self.config), timeout=self.config.launch_timeout,
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                last_exc = exc
                logger.warning("Browser launch attempt %d/%d failed: %s",
                               attempt, max_attempts, _describe(exc))
                if attempt < max_attempts:
                    delay = self.backoff_delay(attempt, exc)
                    logger.debug("Retrying browser launch in %.2fs", delay)
                    await self._sleep(delay)
                continue

            handle = EngineHandle(browser, driver, self.config)
            if attempt > 1:
                logger.info("Browser launched on attempt %d/%d", attempt, max_attempts)
            logger.debug("Acquired %r", handle)
            return handle

        raise EngineLaunchError(
            f"Failed to launch browser after {max_attempts} attempts: "
            f"{_describe(last_exc)}",
            attempts=max_attempts,
        ) from last_exc

    async def release(self, handle: Optional[EngineHandle]) -> None:
        """Close a handle's browser and driver. Safe to call repeatedly.

        Errors and timeouts are logged, never raised; the handle always
        ends CLOSED. Each step is bounded by ``close_timeout``.
        """
        if handle is None or handle.state in (EngineState.CLOSING, EngineState.CLOSED):
            return

        handle.state = EngineState.CLOSING
        try:
            if handle.browser is not None:
                await self._bounded(handle, "closing browser", handle.browser.close())
            if handle.driver is not None:
                await self._bounded(handle, "stopping Playwright driver", handle.driver.stop())
        finally:
            handle.state = EngineState.CLOSED
            logger.debug("Released %r", handle)

    async def _bounded(self, handle: EngineHandle, action: str, step: Awaitable[Any]) -> None:
        timeout = self.config.close_timeout
        try:
            await asyncio.wait_for(step, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Timed out %s for %r after %gs", action, handle, timeout)
        except Exception:
            logger.warning("Error %s for %r", action, handle, exc_info=True)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[EngineHandle]:
        """Acquire a handle for the duration of the block, then release it."""
        handle = await self.acquire()
        try:
            yield handle
        finally:
            await self.release(handle)
