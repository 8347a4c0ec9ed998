"""Tests for BrandingConfig, the layered merge, colours, fonts, templates and filenames."""
from __future__ import annotations

import re
from datetime import datetime

from brands import DEFAULT_BRANDING, get_brand
from docgen.branding import (
    darken_color,
    generate_document_filename,
    get_contrast_color,
    get_docx_font_family,
    hex_to_rgb,
    is_light_color,
    lighten_color,
    map_font_family,
    merge_branding_configs,
    process_template_content,
    rgb_to_hex,
    validate_branding_config,
)
from models_branding import BrandingConfig, FooterSettings, HeaderSettings, normalize_hex_color


# --- BrandingConfig ---
def test_branding_defaults():
    b = BrandingConfig()
    assert b.enabled is False
    assert b.primary_color == "#003366"
    assert b.font_family == "Calibri"
    assert b.header.enabled is True
    assert b.footer.include_page_number is True


def test_branding_accepts_camel_case():
    b = BrandingConfig.model_validate({
        "enabled": True,
        "organizationName": "Acme",
        "primaryColor": "#ABC",
        "logoUrl": "https://example.com/logo.png",
        "footer": {"includePageNumber": False},
    })
    assert b.organization_name == "Acme"
    assert b.primary_color == "#aabbcc"
    assert b.logo_url == "https://example.com/logo.png"
    assert b.footer.include_page_number is False


def test_invalid_colour_falls_back_to_default():
    assert BrandingConfig(primary_color="navy").primary_color == "#003366"
    assert normalize_hex_color("123456") == "#123456"
    assert normalize_hex_color(None, "#ffffff") == "#ffffff"


# --- merge ---
def test_merge_with_no_layers_is_default():
    assert merge_branding_configs() == DEFAULT_BRANDING
    assert merge_branding_configs(None, {}) == DEFAULT_BRANDING


def test_merge_treats_nulls_as_unset():
    assert merge_branding_configs({"header": None, "footer": None}) == DEFAULT_BRANDING
    merged = merge_branding_configs(
        {"organizationName": "Acme", "footer": {"content": "Confidential"}},
        {"organizationName": None, "header": {"content": None, "enabled": False}, "footer": {"content": None}},
    )
    assert merged.organization_name == "Acme"
    assert merged.header.enabled is False and merged.header.content == ""
    assert merged.footer.content == "Confidential"


def test_merge_is_idempotent():
    cfg = BrandingConfig(
        enabled=True,
        organization_name="Acme",
        primary_color="#112233",
        header=HeaderSettings(content="{{organization}}"),
        footer=FooterSettings(enabled=False),
    )
    once = merge_branding_configs(cfg)
    assert merge_branding_configs(cfg, cfg) == once
    assert once == cfg


def test_later_layers_win_and_unset_keys_survive():
    merged = merge_branding_configs(
        {"enabled": True, "organizationName": "Global Org", "primaryColor": "#111111"},
        {"primary_color": "#222222"},
    )
    assert merged.enabled is True
    assert merged.organization_name == "Global Org"
    assert merged.primary_color == "#222222"


def test_header_and_footer_merge_field_by_field():
    merged = merge_branding_configs(
        {"header": {"content": "Confidential"}, "footer": {"content": "{{organization}}"}},
        {"header": {"enabled": False}, "footer": {"includePageNumber": False}},
    )
    assert merged.header == HeaderSettings(enabled=False, content="Confidential")
    assert merged.footer == FooterSettings(enabled=True, content="{{organization}}", include_page_number=False)


def test_model_layer_only_counts_explicit_fields():
    merged = merge_branding_configs(
        {"organization_name": "Keep Me"},
        BrandingConfig(primary_color="#445566"),
    )
    assert merged.organization_name == "Keep Me"
    assert merged.primary_color == "#445566"


def test_sample_brand_preset():
    brand = get_brand("sample")
    assert brand is not None and brand.enabled
    assert get_brand("missing") is None


# --- validation ---
def test_validate_branding_config():
    assert validate_branding_config({"primaryColor": "#003366"}) == []
    errors = validate_branding_config({
        "primaryColor": "blue",
        "logoUrl": "x" * 2001,
        "organizationName": "o" * 201,
        "header": {"content": "h" * 501},
        "footer": {"content": "f" * 501},
    })
    assert len(errors) == 5
    assert errors[0].startswith("primaryColor")


# --- colours ---
def test_colour_helpers():
    assert hex_to_rgb("#003366") == (0, 51, 102)
    assert rgb_to_hex((0, 51, 102)) == "#003366"
    assert lighten_color("#000000", 50) == "#808080"
    assert darken_color("#ffffff", 100) == "#000000"
    assert is_light_color("#ffffff") and not is_light_color("#003366")
    assert get_contrast_color("#003366") == "#ffffff"
    assert get_contrast_color("#f0f0f0") == "#000000"


# --- fonts ---
def test_font_mapping():
    assert map_font_family("Calibri") == "Helvetica"
    assert map_font_family("Times New Roman") == "Times-Roman"
    assert map_font_family("Courier New") == "Courier"
    assert map_font_family("Georgia, 'Times New Roman', serif") == "Times-Roman"
    assert map_font_family("Comic Sans MS") == "Helvetica"
    assert get_docx_font_family("times") == "Times New Roman"
    assert get_docx_font_family("Garamond") == "Garamond"
    assert get_docx_font_family("") == "Calibri"


# --- templates ---
def test_process_template_content():
    now = datetime.now()
    out = process_template_content(
        "{{ORGANIZATION}} - {{year}} - page {{page}} of {{Total}}",
        {"organization": "Acme", "page": 2, "total": 5},
    )
    assert out == f"Acme - {now.year} - page 2 of 5"
    assert process_template_content("no vars") == "no vars"
    assert "{{" not in process_template_content("{{date}}")


# --- filenames ---
def test_generate_document_filename():
    name = generate_document_filename("Q3 Report: Final/Draft!", "pdf", "abcdefghijkl")
    assert re.fullmatch(r"abcdefgh_q3_report__final_draft__\d{13}\.pdf", name)
    long_name = generate_document_filename("x" * 80, "md")
    assert re.fullmatch(r"x{50}_\d{13}\.md", long_name)
