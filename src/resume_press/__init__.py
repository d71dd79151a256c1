"""Resume PDF generation: HTML templating plus a headless Chromium pipeline."""

from __future__ import annotations

from resume_press.version import __version__

__all__ = ["__version__"]
