"""Request-level bridge for the resume PDF service.

A transport adapter (HTTP handler, queue worker) parses the request body
and calls one of these methods. Every method returns a dict with at least
{"success": bool}; failures add "error" and "error_type".
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from resume_press.config import EngineConfig
from resume_press.exceptions import MissingParameterError, RequestError, ResumePressError
from resume_press.models import Customization
from resume_press.renderer.html_renderer import render
from resume_press.renderer.pdf_engine import DocumentConverter
from resume_press.version import __version__

logger = logging.getLogger(__name__)

SERVICE_NAME = "Resume PDF Generation API"

SELF_TEST_OPTIONS = {
    "format": "a4",
    "printBackground": True,
    "margin": {"top": "10mm", "right": "10mm", "bottom": "10mm", "left": "10mm"},
    "scale": 0.8,
    "exportTimeout": 30,
}

SELF_TEST_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    body {{ font-family: Arial, sans-serif; margin: 20px; font-size: 12px; }}
    h1 {{ font-size: 16px; }}
  </style>
</head>
<body>
  <h1>PDF Test</h1>
  <p>Basic PDF test. Time: {timestamp}</p>
</body>
</html>
"""

ENDPOINTS = [
    {
        "name": "generate_pdf",
        "description": "Generate a PDF from HTML content or from resume template data",
        "parameters": {
            "htmlContent": "HTML content to convert to PDF",
            "templateId": "ID of the template to use (instead of htmlContent)",
            "templateData": "Resume data to populate the template",
            "customization": "Optional section order / layout / scale",
            "printOptions": "Optional PDF options merged over the defaults",
        },
    },
    {
        "name": "render_template",
        "description": "Render a resume template as HTML",
        "parameters": {
            "templateId": "ID of the template to use",
            "templateData": "Resume data to populate the template",
            "customization": "Optional customization options",
        },
    },
    {
        "name": "self_test",
        "description": "Convert a minimal document to check the rendering engine",
        "parameters": {},
    },
]


class ResumeAPI:
    """Entry points for PDF generation and template preview."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        converter: Optional[DocumentConverter] = None,
    ) -> None:
        self._converter = converter or DocumentConverter(config)

    @staticmethod
    def _classify_error(error: Exception) -> str:
        """Classify an exception for the error_type field."""
        if isinstance(error, ResumePressError):
            return error.kind
        if isinstance(error, (ValueError, TypeError)):
            return "invalid_request"
        return "internal"

    def _error(self, error: Exception) -> dict:
        return {"success": False, "error": str(error),
                "error_type": self._classify_error(error)}

    # ── Service info ─────────────────────────────────────────────────

    def describe(self) -> dict:
        """Return service name, version and the available operations."""
        return {
            "success": True,
            "name": SERVICE_NAME,
            "version": __version__,
            "endpoints": ENDPOINTS,
        }

    # ── PDF generation ───────────────────────────────────────────────

    async def generate_pdf(self, payload: Any) -> dict:
        """Convert raw HTML or template data to a PDF.

        Returns dict with ``pdf`` bytes, ``content_type``, ``filename`` and
        ``page_count`` on success.
        """
        try:
            result = await self._converter.convert_request(payload)
        except Exception as e:
            logger.exception("Unexpected PDF generation error")
            return self._error(e)
        return result.to_dict()

    async def self_test(self) -> dict:
        """Convert a minimal built-in document end to end."""
        timestamp = datetime.now(timezone.utc).isoformat()
        payload = {
            "htmlContent": SELF_TEST_HTML.format(timestamp=timestamp),
            "printOptions": SELF_TEST_OPTIONS,
            "filename": "test.pdf",
        }
        logger.info("Starting self-test PDF generation")
        return await self.generate_pdf(payload)

    # ── Template preview ─────────────────────────────────────────────

    def render_template(self, payload: Any) -> dict:
        """Render template data to HTML without starting a browser."""
        try:
            if not isinstance(payload, Mapping):
                raise RequestError("Request body must be an object")
            template_id = payload.get("templateId")
            if not template_id:
                raise MissingParameterError("Missing required parameter: templateId")
            template_data = payload.get("templateData")
            if template_data is not None and not isinstance(template_data, Mapping):
                raise RequestError("templateData must be an object")
            customization = Customization.from_mapping(payload.get("customization"))

            markup = render(str(template_id), template_data, customization)
            return {
                "success": True,
                "html": markup.html,
                "content_type": "text/html",
                "template_id": markup.template_id,
                "byte_length": markup.byte_length,
            }
        except ResumePressError as e:
            return self._error(e)
        except Exception as e:
            logger.exception("Error rendering template")
            return self._error(e)
