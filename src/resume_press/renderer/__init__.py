"""Document rendering package. Generates print-ready resume PDFs.

Uses HTML/CSS (Jinja2) + Playwright (headless Chromium) for PDF generation.
"""

from __future__ import annotations

from resume_press.renderer.engine import EngineHandle, EngineProcessManager, EngineState
from resume_press.renderer.html_renderer import render
from resume_press.renderer.pdf_engine import ConversionState, DocumentConverter, count_pages

__all__ = [
    "render",
    "DocumentConverter",
    "ConversionState",
    "EngineHandle",
    "EngineProcessManager",
    "EngineState",
    "count_pages",
]
