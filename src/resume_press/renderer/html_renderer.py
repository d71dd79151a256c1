"""HTML resume renderer using Jinja2.

Turns structured resume data plus layout customization into a single
self-contained HTML document sized for an A4 page. The output is a pure
function of its inputs, so previews and PDFs of the same data match.

Section kinds with dedicated layouts:
  - summary     prose block
  - experience  entries (title / company / dates / description)
  - education   entries (degree / school / dates / description)
  - skills      two-column bullet list
Any other key renders as a generic block holding the raw value as JSON.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from resume_press.models import (
    Customization,
    RenderedMarkup,
    ResumeDocument,
    Section,
)
from resume_press.renderer.filters import compact_json, date_range, section_title, setup_jinja_env

logger = logging.getLogger(__name__)

RESUME_TEMPLATE = "resume.html"

# Rendered when a template is previewed without any data.
SAMPLE_TEMPLATE_DATA = {
    "personalInfo": {
        "name": "John Doe",
        "title": "Software Engineer",
        "email": "john.doe@example.com",
        "phone": "(123) 456-7890",
        "location": "New York, NY",
    },
    "summary": "Experienced software engineer with a passion for developing innovative solutions.",
    "experience": [
        {
            "title": "Senior Software Engineer",
            "company": "Tech Company Inc.",
            "startDate": "Jan 2020",
            "endDate": "Present",
            "description": "Led development of key features for the company's main product.",
        },
    ],
}

SAMPLE_SECTION_ORDER = {"left": ["summary", "experience"], "right": [], "layout": "one-column"}

_env = None


def _get_env():
    global _env
    if _env is None:
        _env = setup_jinja_env()
    return _env


# ── Section view builders ─────────────────────────────────────────────

def _entry_fields(item: Any, title_key: str, subtitle_key: str, ongoing: str) -> dict:
    if not isinstance(item, Mapping):
        return {"title": str(item), "subtitle": "", "dates": "", "description": ""}
    return {
        "title": item.get(title_key) or "",
        "subtitle": item.get(subtitle_key) or "",
        "dates": date_range(item.get("startDate"), item.get("endDate"), ongoing),
        "description": item.get("description") or "",
    }


def _skill_label(item: Any) -> str:
    if isinstance(item, Mapping):
        return str(item.get("name") or "")
    return str(item)


def _summary_view(section: Section) -> dict:
    return {"kind": "prose", "title": "Professional Summary", "text": str(section.value)}


def _experience_view(section: Section) -> dict:
    items = section.value if isinstance(section.value, list) else []
    return {
        "kind": "entries",
        "title": "Work Experience",
        "entries": [_entry_fields(job, "title", "company", "Present") for job in items],
    }


def _education_view(section: Section) -> dict:
    items = section.value if isinstance(section.value, list) else []
    return {
        "kind": "entries",
        "title": "Education",
        "entries": [_entry_fields(edu, "degree", "school", "") for edu in items],
    }


def _skills_view(section: Section) -> dict:
    items = section.value if isinstance(section.value, list) else []
    return {"kind": "list", "title": "Skills", "items": [_skill_label(s) for s in items]}


_SECTION_VIEWS = {
    "summary": _summary_view,
    "experience": _experience_view,
    "education": _education_view,
    "skills": _skills_view,
}


def _section_context(section: Section) -> dict:
    builder = _SECTION_VIEWS.get(section.key)
    if builder is None:
        view = {
            "kind": "generic",
            "title": section_title(section.key),
            "text": compact_json(section.value),
        }
    else:
        view = builder(section)
    view["key"] = section.key
    view["column"] = section.column
    return view


def build_context(template_id: str, document: ResumeDocument) -> dict:
    """Assemble the template context for a resume document."""
    return {
        "template_id": template_id,
        "person": document.personal_info,
        "sections": [_section_context(s) for s in document.sections],
    }


# ── Public API ────────────────────────────────────────────────────────

def render(
    template_id: str,
    template_data: Optional[Mapping[str, Any]] = None,
    customization: Union[Customization, Mapping[str, Any], None] = None,
) -> RenderedMarkup:
    """Render resume data to a complete HTML document.

    Args:
        template_id: Template identifier, recorded in the markup.
        template_data: ``personalInfo`` plus one entry per section key.
            ``None`` renders the built-in sample resume.
        customization: ``Customization`` or its wire mapping
            (``sectionOrder``, ``scale``).

    Returns:
        RenderedMarkup holding the HTML string.
    """
    if not isinstance(customization, Customization):
        customization = Customization.from_mapping(customization)

    if template_data is None:
        template_data = SAMPLE_TEMPLATE_DATA
        if customization.section_order == Customization().section_order:
            customization = Customization.from_mapping({"sectionOrder": SAMPLE_SECTION_ORDER})

    document = ResumeDocument.from_template_data(template_data, customization)
    context = build_context(str(template_id), document)
    html = _get_env().get_template(RESUME_TEMPLATE).render(context)

    markup = RenderedMarkup(html=html, template_id=str(template_id))
    logger.debug("Rendered template %s: %d sections, %d bytes",
                 markup.template_id, len(document.sections), markup.byte_length)
    return markup
