"""Playwright-based PDF conversion pipeline.

Each conversion runs one strictly ordered pipeline:

    idle -> acquiring -> loading -> awaiting_ready -> printing -> releasing -> done

Any stage may fail instead; the browser handle is still released when one
was acquired, and the original error is raised afterwards.
"""

from __future__ import annotations

import asyncio
import io
import logging
from enum import Enum
from typing import Any, Mapping, Optional, Union

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from resume_press.config import DEFAULT_PRINT_OPTIONS, EngineConfig, merge_options
from resume_press.exceptions import (
    ConversionError,
    ExportError,
    LoadTimeoutError,
    ResumePressError,
)
from resume_press.models import ConversionRequest, ConversionResult, PrintOptions
from resume_press.renderer.engine import EngineProcessManager
from resume_press.renderer.html_renderer import render

logger = logging.getLogger(__name__)

_TIMEOUTS = (asyncio.TimeoutError, PlaywrightTimeoutError)

FONTS_READY_JS = "document.fonts.ready.then(() => true)"

# Injected into rendered resumes after load so page breaks land between
# resume pages rather than inside them.
PRINT_PAGE_STYLE = """
@page {
  margin: 0;
  size: A4;
}
body {
  margin: 0;
  padding: 0;
}
.resume-page {
  page-break-inside: avoid;
}
[data-page="2"], [data-page-number="2"] {
  page-break-before: always;
}
"""


class ConversionState(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    LOADING = "loading"
    AWAITING_READY = "awaiting_ready"
    PRINTING = "printing"
    RELEASING = "releasing"
    DONE = "done"
    FAILED = "failed"


class ConversionRun:
    """State of a single pipeline instance, with the states it passed through."""

    def __init__(self) -> None:
        self.state = ConversionState.IDLE
        self.history: list[str] = [self.state.value]

    def advance(self, state: ConversionState) -> None:
        logger.debug("Conversion %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state.value)


def count_pages(pdf: bytes) -> Optional[int]:
    """Count pages in PDF bytes. Returns None on failure."""
    try:
        return len(PdfReader(io.BytesIO(pdf)).pages)
    except (PdfReadError, OSError, ValueError):
        logger.warning("Could not count pages in exported PDF (%d bytes)", len(pdf))
        return None


class DocumentConverter:
    """Convert HTML to PDF through a freshly launched browser per call.

    Args:
        config: Engine settings shared by every conversion.
        manager: Process manager; built from ``config`` when omitted.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        manager: Optional[EngineProcessManager] = None,
    ) -> None:
        self.config = config or (manager.config if manager else EngineConfig())
        self.manager = manager or EngineProcessManager(self.config)

    # -- Stages -------------------------------------------------------------

    async def _load(self, handle, html: str, viewport: dict, inject_page_style: bool):
        timeout = self.config.load_timeout
        try:
            page = await handle.new_page(viewport)
            await asyncio.wait_for(
                page.set_content(html, wait_until="domcontentloaded", timeout=timeout * 1000),
                timeout=timeout,
            )
            if inject_page_style:
                await page.add_style_tag(content=PRINT_PAGE_STYLE)
        except _TIMEOUTS as exc:
            raise LoadTimeoutError(f"Loading markup exceeded {timeout:g}s") from exc
        except Exception as exc:
            raise ConversionError(f"Failed to load markup: {exc}") from exc
        return page

    async def _await_fonts(self, page) -> None:
        """Wait for web fonts, but never longer than ``font_timeout``.

        A timeout only degrades font rendering, so the pipeline continues.
        """
        try:
            await asyncio.wait_for(page.evaluate(FONTS_READY_JS), timeout=self.config.font_timeout)
        except _TIMEOUTS:
            logger.warning("Fonts not ready after %gs; continuing with fallback fonts",
                           self.config.font_timeout)
        except Exception:
            logger.warning("Font readiness check failed; continuing", exc_info=True)

    async def _export(self, page, options: PrintOptions) -> bytes:
        # A request may shorten the export ceiling, never extend it.
        timeout = self.config.export_timeout
        if options.export_timeout:
            timeout = min(options.export_timeout, timeout)
        try:
            pdf = await asyncio.wait_for(page.pdf(**options.to_playwright()), timeout=timeout)
        except _TIMEOUTS as exc:
            raise ExportError(f"PDF export exceeded {timeout:g}s") from exc
        except Exception as exc:
            raise ExportError(f"PDF export failed: {exc}") from exc
        if not pdf:
            raise ExportError("PDF export produced no output")
        return pdf

    # -- Pipeline -----------------------------------------------------------

    def resolve_print_options(
        self, print_options: Union[PrintOptions, Mapping[str, Any], None],
    ) -> PrintOptions:
        if isinstance(print_options, PrintOptions):
            return print_options
        return PrintOptions.from_mapping(merge_options(DEFAULT_PRINT_OPTIONS, print_options))

    async def convert(
        self,
        html: str,
        print_options: Union[PrintOptions, Mapping[str, Any], None] = None,
        *,
        viewport: Optional[Mapping[str, Any]] = None,
        filename: str = "resume.pdf",
        inject_page_style: bool = False,
        run: Optional[ConversionRun] = None,
    ) -> ConversionResult:
        """Run the full pipeline for one HTML document.

        Returns:
            A successful ConversionResult with the PDF bytes.

        Raises:
            EngineLaunchError: the browser could not be started.
            LoadTimeoutError: the markup did not load in time.
            ConversionError: loading failed for another reason.
            ExportError: PDF export timed out, failed or was empty.
        """
        run = run or ConversionRun()
        options = self.resolve_print_options(print_options)
        viewport = merge_options(self.config.default_viewport(), viewport)

        handle = None
        failed = True
        try:
            run.advance(ConversionState.ACQUIRING)
            handle = await self.manager.acquire()

            run.advance(ConversionState.LOADING)
            page = await self._load(handle, html, viewport, inject_page_style)

            run.advance(ConversionState.AWAITING_READY)
            await self._await_fonts(page)

            run.advance(ConversionState.PRINTING)
            logger.info("Generating PDF (%s, scale=%g)", options.format, options.scale)
            pdf = await self._export(page, options)
            failed = False
        finally:
            if failed:
                run.advance(ConversionState.FAILED)
                if handle is not None:
                    handle.mark_failed()
            if handle is not None:
                run.advance(ConversionState.RELEASING)
                await self.manager.release(handle)
            run.advance(ConversionState.FAILED if failed else ConversionState.DONE)

        page_count = count_pages(pdf)
        logger.info("PDF generated: %d bytes, %s pages", len(pdf), page_count)
        return ConversionResult.ok(pdf, filename, page_count, run.history)

    async def convert_request(self, request: Union[ConversionRequest, Mapping[str, Any]]) -> ConversionResult:
        """Validate, render if needed, and convert one request.

        Never raises for pipeline or input errors; they come back as a
        failed ConversionResult carrying the error kind and detail.
        """
        run = ConversionRun()
        try:
            if not isinstance(request, ConversionRequest):
                request = ConversionRequest.from_mapping(request)
            options = request.effective_print_options()

            if request.template_id is not None:
                logger.info("Generating PDF for template: %s", request.template_id)
                html = render(request.template_id, request.template_data, request.customization).html
            else:
                html = request.html_content

            return await self.convert(
                html,
                options,
                viewport=request.viewport,
                filename=request.suggested_filename,
                inject_page_style=request.template_id is not None,
                run=run,
            )
        except ResumePressError as exc:
            logger.error("Conversion failed (%s): %s", exc.kind, exc)
            return ConversionResult.failure(exc, run.history)
