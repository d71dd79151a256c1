"""Tests for request parsing and data models."""

from __future__ import annotations

import pytest

from resume_press.exceptions import ExportError, MissingParameterError, RequestError
from resume_press.models import (
    ConversionRequest,
    ConversionResult,
    Customization,
    PersonalInfo,
    PrintOptions,
    RenderedMarkup,
    ResumeDocument,
    SectionOrder,
)


class TestConversionRequest:
    def test_neither_html_nor_template_id(self):
        with pytest.raises(MissingParameterError):
            ConversionRequest.from_mapping({"templateData": {"summary": "x"}})

    def test_both_html_and_template_id(self):
        with pytest.raises(MissingParameterError):
            ConversionRequest.from_mapping({"htmlContent": "<p>x</p>", "templateId": "modern"})

    def test_empty_strings_count_as_missing(self):
        with pytest.raises(MissingParameterError):
            ConversionRequest.from_mapping({"htmlContent": "", "templateId": ""})

    def test_body_must_be_mapping(self):
        with pytest.raises(RequestError):
            ConversionRequest.from_mapping("<p>x</p>")

    def test_template_data_must_be_mapping(self):
        with pytest.raises(RequestError):
            ConversionRequest.from_mapping({"templateId": "modern", "templateData": ["x"]})

    def test_html_request(self):
        request = ConversionRequest.from_mapping({"htmlContent": "<p>x</p>"})
        assert request.html_content == "<p>x</p>"
        assert request.template_id is None
        assert request.suggested_filename == "resume.pdf"

    def test_template_filename_hint(self):
        request = ConversionRequest.from_mapping({"templateId": "modern"})
        assert request.suggested_filename == "modern-resume.pdf"

    def test_explicit_filename_wins(self):
        request = ConversionRequest.from_mapping({"templateId": "modern", "filename": "cv.pdf"})
        assert request.suggested_filename == "cv.pdf"

    def test_pdf_options_alias(self):
        request = ConversionRequest.from_mapping({"htmlContent": "<p/>", "pdfOptions": {"scale": 0.7}})
        assert request.effective_print_options().scale == 0.7

    def test_customization_scale_is_template_default(self):
        request = ConversionRequest.from_mapping({
            "templateId": "modern",
            "customization": {"scale": 0.9},
        })
        assert request.effective_print_options().scale == 0.9

    def test_print_options_override_customization_scale(self):
        request = ConversionRequest.from_mapping({
            "templateId": "modern",
            "customization": {"scale": 0.9},
            "printOptions": {"scale": 0.5},
        })
        options = request.effective_print_options()
        assert options.scale == 0.5
        assert options.format == "a4"
        assert options.margin == {"top": "0mm", "right": "0mm", "bottom": "0mm", "left": "0mm"}

    def test_customization_scale_checked_when_printing(self):
        request = ConversionRequest.from_mapping({
            "templateId": "modern",
            "customization": {"scale": 3},
        })
        with pytest.raises(RequestError, match="customization.scale"):
            request.effective_print_options()

    def test_overridden_customization_scale_is_not_checked(self):
        request = ConversionRequest.from_mapping({
            "templateId": "modern",
            "customization": {"scale": 3},
            "printOptions": {"scale": 0.5},
        })
        assert request.effective_print_options().scale == 0.5


class TestPrintOptions:
    def test_to_playwright(self):
        options = PrintOptions.from_mapping({
            "format": "letter",
            "printBackground": False,
            "preferCSSPageSize": False,
            "margin": {"top": "1in", "bottom": "1in"},
            "scale": 0.8,
        })
        assert options.to_playwright() == {
            "format": "letter",
            "margin": {"top": "1in", "bottom": "1in"},
            "scale": 0.8,
            "print_background": False,
            "prefer_css_page_size": False,
        }

    def test_export_timeout(self):
        assert PrintOptions.from_mapping({"exportTimeout": "12"}).export_timeout == 12.0

    @pytest.mark.parametrize("scale", [0, 0.05, 2.5, "big"])
    def test_scale_out_of_range(self, scale):
        with pytest.raises(RequestError):
            PrintOptions.from_mapping({"scale": scale})

    @pytest.mark.parametrize("key", ["printBackground", "preferCSSPageSize"])
    @pytest.mark.parametrize("value", ["false", 0, None])
    def test_flags_must_be_booleans(self, key, value):
        with pytest.raises(RequestError, match=key):
            PrintOptions.from_mapping({key: value})

    def test_margin_must_be_mapping(self):
        with pytest.raises(RequestError):
            PrintOptions.from_mapping({"margin": "10mm"})


class TestSectionOrder:
    def test_default_order(self):
        order = SectionOrder.from_mapping(None)
        assert [key for _, key in order.placements()] == ["summary", "experience", "education", "skills"]

    def test_one_column_ignores_right(self):
        order = SectionOrder.from_mapping({"left": ["skills"], "right": ["summary"], "layout": "one-column"})
        assert order.placements() == [("left", "skills")]

    def test_two_column_left_then_right(self):
        order = SectionOrder.from_mapping({
            "left": ["summary", "experience"],
            "right": ["skills", "education"],
            "layout": "two-column",
        })
        assert order.placements() == [
            ("left", "summary"), ("left", "experience"),
            ("right", "skills"), ("right", "education"),
        ]

    def test_unknown_layout(self):
        with pytest.raises(RequestError):
            SectionOrder.from_mapping({"left": [], "layout": "three-column"})

    def test_null_lists_use_defaults(self):
        order = SectionOrder.from_mapping({"left": None, "right": None, "layout": "two-column"})
        assert order.left == ("summary", "experience", "education", "skills")
        assert order.right == ()

    def test_left_must_be_list(self):
        with pytest.raises(RequestError):
            SectionOrder.from_mapping({"left": "summary"})


class TestResumeDocument:
    def test_skips_missing_and_empty_sections(self):
        customization = Customization.from_mapping(
            {"sectionOrder": {"left": ["summary", "experience", "awards"], "right": []}}
        )
        doc = ResumeDocument.from_template_data({"summary": "Hi", "experience": []}, customization)
        assert [s.key for s in doc.sections] == ["summary"]

    def test_personal_info_defaults(self):
        info = PersonalInfo.from_mapping({"email": "a@b.c", "name": "  "})
        assert info.name == "Your Name"
        assert info.title == "Professional Title"
        assert info.contact_items == ["a@b.c"]


class TestResults:
    def test_markup_byte_length_is_utf8(self):
        assert RenderedMarkup(html="é", template_id="t").byte_length == 2

    def test_failure_result_has_no_pdf(self):
        result = ConversionResult.failure(ExportError("boom"))
        assert result.to_dict() == {"success": False, "error": "boom", "error_type": "export_failed"}
        assert result.pdf is None
