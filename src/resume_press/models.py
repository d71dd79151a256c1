"""Data models for resume rendering and PDF conversion requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from resume_press.config import DEFAULT_PRINT_OPTIONS, merge_options
from resume_press.exceptions import MissingParameterError, RequestError

LAYOUT_ONE_COLUMN = "one-column"
LAYOUT_TWO_COLUMN = "two-column"

DEFAULT_SECTION_KEYS = ("summary", "experience", "education", "skills")

MIN_SCALE = 0.1
MAX_SCALE = 2.0


# ── Resume content ───────────────────────────────────────────────────


@dataclass(frozen=True)
class PersonalInfo:
    name: str = "Your Name"
    title: str = "Professional Title"
    email: str = ""
    phone: str = ""
    location: str = ""

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "PersonalInfo":
        """Build from caller data; empty or missing fields fall back to defaults."""
        if not isinstance(data, Mapping):
            return cls()
        defaults = cls()
        return cls(
            name=_text(data.get("name")) or defaults.name,
            title=_text(data.get("title")) or defaults.title,
            email=_text(data.get("email")),
            phone=_text(data.get("phone")),
            location=_text(data.get("location")),
        )

    @property
    def contact_items(self) -> list[str]:
        return [item for item in (self.email, self.phone, self.location) if item]


@dataclass(frozen=True)
class SectionOrder:
    left: tuple[str, ...] = DEFAULT_SECTION_KEYS
    right: tuple[str, ...] = ()
    layout: str = LAYOUT_ONE_COLUMN

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "SectionOrder":
        if not isinstance(data, Mapping):
            return cls()
        layout = data.get("layout") or LAYOUT_ONE_COLUMN
        if layout not in (LAYOUT_ONE_COLUMN, LAYOUT_TWO_COLUMN):
            raise RequestError(
                f"Unknown layout {layout!r}; expected "
                f"{LAYOUT_ONE_COLUMN!r} or {LAYOUT_TWO_COLUMN!r}"
            )
        left = data.get("left")
        right = data.get("right")
        # null means "not given", same as an absent key
        return cls(
            left=DEFAULT_SECTION_KEYS if left is None else _keys(left),
            right=() if right is None else _keys(right),
            layout=layout,
        )

    def placements(self) -> list[tuple[str, str]]:
        """Return ``(column, key)`` pairs in render order.

        One-column layouts ignore the right list entirely.
        """
        placed = [("left", key) for key in self.left]
        if self.layout == LAYOUT_TWO_COLUMN:
            placed.extend(("right", key) for key in self.right)
        return placed


@dataclass(frozen=True)
class Customization:
    section_order: SectionOrder = field(default_factory=SectionOrder)
    # Print scale only; it never changes the markup, so it is validated
    # when a PDF is built from it.
    scale: Any = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "Customization":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise RequestError("customization must be an object")
        return cls(
            section_order=SectionOrder.from_mapping(data.get("sectionOrder")),
            scale=data.get("scale"),
        )


@dataclass(frozen=True)
class Section:
    key: str
    value: Any
    column: str = "left"


@dataclass(frozen=True)
class ResumeDocument:
    """Personal info plus the sections selected by the customization, in order."""

    personal_info: PersonalInfo
    sections: tuple[Section, ...]
    customization: Customization

    @classmethod
    def from_template_data(
        cls,
        template_data: Mapping[str, Any],
        customization: Customization,
    ) -> "ResumeDocument":
        sections = []
        for column, key in customization.section_order.placements():
            value = template_data.get(key)
            if not value:
                continue
            sections.append(Section(key=key, value=value, column=column))
        return cls(
            personal_info=PersonalInfo.from_mapping(template_data.get("personalInfo")),
            sections=tuple(sections),
            customization=customization,
        )


@dataclass(frozen=True)
class RenderedMarkup:
    html: str
    template_id: str

    @property
    def byte_length(self) -> int:
        return len(self.html.encode("utf-8"))

    def __str__(self) -> str:
        return self.html


# ── Conversion ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class PrintOptions:
    """Export parameters handed to the engine's PDF call."""

    format: str = "a4"
    margin: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_PRINT_OPTIONS["margin"]))
    scale: float = 1.0
    print_background: bool = True
    prefer_css_page_size: bool = True
    export_timeout: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PrintOptions":
        """Build from an already-merged option mapping (camelCase wire keys)."""
        margin = data.get("margin") or {}
        if not isinstance(margin, Mapping):
            raise RequestError("margin must be an object with top/right/bottom/left")
        timeout = data.get("exportTimeout")
        if timeout is not None:
            try:
                timeout = float(timeout)
            except (TypeError, ValueError) as exc:
                raise RequestError(f"exportTimeout must be a number, got {timeout!r}") from exc
            if timeout <= 0:
                raise RequestError("exportTimeout must be positive")
        return cls(
            format=str(data.get("format") or "a4"),
            margin={side: str(margin[side]) for side in ("top", "right", "bottom", "left") if side in margin},
            scale=_scale(data.get("scale", 1), "scale"),
            print_background=_flag(data.get("printBackground", True), "printBackground"),
            prefer_css_page_size=_flag(data.get("preferCSSPageSize", True), "preferCSSPageSize"),
            export_timeout=timeout,
        )

    def to_playwright(self) -> dict:
        """Keyword arguments for Playwright's ``page.pdf()``."""
        return {
            "format": self.format,
            "margin": dict(self.margin),
            "scale": self.scale,
            "print_background": self.print_background,
            "prefer_css_page_size": self.prefer_css_page_size,
        }


@dataclass(frozen=True)
class ConversionRequest:
    """One PDF request: raw markup, or a template id with its data."""

    html_content: Optional[str] = None
    template_id: Optional[str] = None
    template_data: Optional[Mapping[str, Any]] = None
    customization: Customization = field(default_factory=Customization)
    print_options: Optional[Mapping[str, Any]] = None
    viewport: Optional[Mapping[str, Any]] = None
    filename: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Any) -> "ConversionRequest":
        """Validate a request body. Raises before any engine work happens."""
        if not isinstance(payload, Mapping):
            raise RequestError("Request body must be an object")

        html_content = payload.get("htmlContent") or None
        template_id = payload.get("templateId") or None
        if html_content is None and template_id is None:
            raise MissingParameterError(
                "Missing required parameter: htmlContent or templateId"
            )
        if html_content is not None and template_id is not None:
            raise MissingParameterError(
                "Provide exactly one of htmlContent or templateId, not both"
            )
        if html_content is not None and not isinstance(html_content, str):
            raise RequestError("htmlContent must be a string")

        template_data = payload.get("templateData")
        if template_data is not None and not isinstance(template_data, Mapping):
            raise RequestError("templateData must be an object")

        # pdfOptions is the older name for printOptions
        print_options = payload.get("printOptions", payload.get("pdfOptions"))
        for name, value in (("printOptions", print_options), ("viewport", payload.get("viewport"))):
            if value is not None and not isinstance(value, Mapping):
                raise RequestError(f"{name} must be an object")

        return cls(
            html_content=html_content,
            template_id=str(template_id) if template_id is not None else None,
            template_data=template_data,
            customization=Customization.from_mapping(payload.get("customization")),
            print_options=print_options,
            viewport=payload.get("viewport"),
            filename=payload.get("filename") or None,
        )

    @property
    def suggested_filename(self) -> str:
        if self.filename:
            return str(self.filename)
        if self.template_id:
            return f"{self.template_id}-resume.pdf"
        return "resume.pdf"

    def effective_print_options(self) -> PrintOptions:
        """Merge request print options over defaults.

        Template requests take their default scale from the customization.
        """
        defaults = dict(DEFAULT_PRINT_OPTIONS)
        overrides = self.print_options or {}
        if (self.template_id and self.customization.scale is not None
                and "scale" not in overrides):
            defaults["scale"] = _scale(self.customization.scale, "customization.scale")
        return PrintOptions.from_mapping(merge_options(defaults, self.print_options))


@dataclass
class ConversionResult:
    """Outcome of one conversion: PDF bytes, or an error kind with detail."""

    success: bool
    pdf: Optional[bytes] = None
    filename: str = "resume.pdf"
    page_count: Optional[int] = None
    error_kind: Optional[str] = None
    detail: str = ""
    states: list[str] = field(default_factory=list)

    content_type = "application/pdf"

    @classmethod
    def ok(cls, pdf: bytes, filename: str, page_count: Optional[int] = None,
           states: Optional[list[str]] = None) -> "ConversionResult":
        return cls(success=True, pdf=pdf, filename=filename,
                   page_count=page_count, states=list(states or []))

    @classmethod
    def failure(cls, error: Exception, states: Optional[list[str]] = None) -> "ConversionResult":
        kind = getattr(error, "kind", "internal")
        return cls(success=False, error_kind=kind, detail=str(error),
                   states=list(states or []))

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.detail, "error_type": self.error_kind}
        return {
            "success": True,
            "pdf": self.pdf,
            "content_type": self.content_type,
            "filename": self.filename,
            "page_count": self.page_count,
        }


# ── Helpers ──────────────────────────────────────────────────────────


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _keys(value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise RequestError("sectionOrder.left and sectionOrder.right must be lists of section keys")
    return tuple(str(key) for key in value)


def _flag(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise RequestError(f"{name} must be true or false, got {value!r}")
    return value


def _scale(value: Any, name: str) -> float:
    try:
        scale = float(value)
    except (TypeError, ValueError) as exc:
        raise RequestError(f"{name} must be a number, got {value!r}") from exc
    if not MIN_SCALE <= scale <= MAX_SCALE:
        raise RequestError(f"{name} must be between {MIN_SCALE} and {MAX_SCALE}, got {scale}")
    return scale
