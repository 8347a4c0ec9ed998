"""In-repo branding presets. Categories reference these by id."""
from __future__ import annotations

from models_branding import BrandingConfig, FooterSettings, HeaderSettings

DEFAULT_BRANDING = BrandingConfig()

BRANDS: dict[str, BrandingConfig] = {
    "default": DEFAULT_BRANDING,
    "sample": BrandingConfig(
        enabled=True,
        organization_name="Sample Organization",
        primary_color="#2c5282",
        font_family="Segoe UI",
        header=HeaderSettings(enabled=True, content="{{organization}} Policy Library"),
        footer=FooterSettings(
            enabled=True,
            content="{{organization}} · Confidential · {{date}}",
            include_page_number=True,
        ),
    ),
}


def get_brand(brand_id: str) -> BrandingConfig | None:
    return BRANDS.get(brand_id)
