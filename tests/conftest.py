"""Shared fixtures: fake Playwright browser objects and a recording sleep.

The fakes mimic the small slice of the async Playwright API the pipeline
uses (new_context/new_page/set_content/add_style_tag/evaluate/pdf/close).
"""

from __future__ import annotations

import asyncio
import io

import pytest
from pypdf import PdfWriter


def _one_page_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=595, height=842)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


class FakePage:
    def __init__(
        self,
        *,
        pdf_bytes: bytes = b"",
        load_error: Exception | None = None,
        load_delay: float = 0,
        fonts_error: Exception | None = None,
        fonts_delay: float = 0,
        pdf_error: Exception | None = None,
        pdf_delay: float = 0,
    ):
        self.pdf_bytes = pdf_bytes
        self.load_error = load_error
        self.load_delay = load_delay
        self.fonts_error = fonts_error
        self.fonts_delay = fonts_delay
        self.pdf_error = pdf_error
        self.pdf_delay = pdf_delay
        self.content = None
        self.load_kwargs = {}
        self.styles = []
        self.scripts = []
        self.pdf_kwargs = None

    async def set_content(self, html, **kwargs):
        self.content = html
        self.load_kwargs = kwargs
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        if self.load_error:
            raise self.load_error

    async def add_style_tag(self, content=None, **kwargs):
        self.styles.append(content)

    async def evaluate(self, script):
        self.scripts.append(script)
        if self.fonts_delay:
            await asyncio.sleep(self.fonts_delay)
        if self.fonts_error:
            raise self.fonts_error
        return True

    async def pdf(self, **kwargs):
        self.pdf_kwargs = kwargs
        if self.pdf_delay:
            await asyncio.sleep(self.pdf_delay)
        if self.pdf_error:
            raise self.pdf_error
        return self.pdf_bytes


class FakeContext:
    def __init__(self, page: FakePage):
        self.page = page

    async def new_page(self):
        return self.page


class FakeBrowser:
    def __init__(
        self,
        page: FakePage,
        *,
        close_error: Exception | None = None,
        close_delay: float = 0,
        context_error: Exception | None = None,
    ):
        self.page = page
        self.close_error = close_error
        self.close_delay = close_delay
        self.context_error = context_error
        self.context_kwargs = None
        self.close_calls = 0

    async def new_context(self, **kwargs):
        self.context_kwargs = kwargs
        if self.context_error:
            raise self.context_error
        return FakeContext(self.page)

    async def close(self):
        self.close_calls += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        if self.close_error:
            raise self.close_error


class FakeDriver:
    def __init__(self):
        self.stop_calls = 0

    async def stop(self):
        self.stop_calls += 1


class FakeLauncher:
    """Launcher that fails with ``failures`` in order, then succeeds.

    ``browser_kwargs`` are passed to every FakeBrowser it creates.
    """

    def __init__(self, page_factory, failures=(), delay: float = 0, browser_kwargs=None):
        self.page_factory = page_factory
        self.failures = list(failures)
        self.delay = delay
        self.browser_kwargs = browser_kwargs or {}
        self.calls = 0
        self.browsers: list[FakeBrowser] = []
        self.drivers: list[FakeDriver] = []

    async def __call__(self, config):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures:
            raise self.failures.pop(0)
        browser = FakeBrowser(self.page_factory(), **self.browser_kwargs)
        driver = FakeDriver()
        self.browsers.append(browser)
        self.drivers.append(driver)
        return browser, driver

    @property
    def close_calls(self) -> int:
        return sum(b.close_calls for b in self.browsers)


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def pdf_bytes() -> bytes:
    return _one_page_pdf()


@pytest.fixture
def make_page(pdf_bytes):
    """Factory for fake pages; returns a valid one-page PDF by default."""
    def _make(**kwargs) -> FakePage:
        kwargs.setdefault("pdf_bytes", pdf_bytes)
        return FakePage(**kwargs)
    return _make


@pytest.fixture
def make_launcher(make_page):
    """Factory for fake launchers.

    Browser faults (``close_error``, ``close_delay``, ``context_error``) go to
    every browser created; remaining kwargs go to every page.
    """
    def _make(failures=(), delay=0, close_error=None, close_delay=0, context_error=None,
              **page_kwargs) -> FakeLauncher:
        return FakeLauncher(
            lambda: make_page(**page_kwargs),
            failures=failures,
            delay=delay,
            browser_kwargs={
                "close_error": close_error,
                "close_delay": close_delay,
                "context_error": context_error,
            },
        )
    return _make


@pytest.fixture
def recorded_sleep() -> RecordingSleep:
    return RecordingSleep()
