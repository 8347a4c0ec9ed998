"""Branding configuration applied to generated documents."""
from __future__ import annotations

import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_PRIMARY_COLOR = "#003366"
DEFAULT_FONT_FAMILY = "Calibri"

_HEX6_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")
_HEX3_RE = re.compile(r"^#?([0-9a-fA-F]{3})$")


def normalize_hex_color(value: Any, default: str = DEFAULT_PRIMARY_COLOR) -> str:
    """Return '#rrggbb' for a 6- or 3-digit hex string, else the default."""
    text = str(value or "").strip()
    m = _HEX6_RE.match(text)
    if m:
        return f"#{m.group(1).lower()}"
    m = _HEX3_RE.match(text)
    if m:
        return "#" + "".join(c * 2 for c in m.group(1).lower())
    return default


class HeaderSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = True
    content: str = ""


class FooterSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = True
    content: str = ""
    include_page_number: bool = Field(
        default=True,
        validation_alias=AliasChoices("include_page_number", "includePageNumber"),
    )


class BrandingConfig(BaseModel):
    """Resolved branding for one generation request."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = False
    logo_url: str = Field(default="", validation_alias=AliasChoices("logo_url", "logoUrl", "logoSource", "logo_source"))
    organization_name: str = Field(
        default="",
        validation_alias=AliasChoices("organization_name", "organizationName"),
    )
    primary_color: str = Field(
        default=DEFAULT_PRIMARY_COLOR,
        validation_alias=AliasChoices("primary_color", "primaryColor"),
    )
    font_family: str = Field(
        default=DEFAULT_FONT_FAMILY,
        validation_alias=AliasChoices("font_family", "fontFamily"),
    )
    header: HeaderSettings = Field(default_factory=HeaderSettings)
    footer: FooterSettings = Field(default_factory=FooterSettings)

    @field_validator("primary_color", mode="before")
    @classmethod
    def _normalize_primary_color(cls, value: Any) -> str:
        return normalize_hex_color(value)

    @field_validator("logo_url", "organization_name", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("font_family", mode="before")
    @classmethod
    def _default_font(cls, value: Any) -> str:
        text = str(value or "").strip()
        return text or DEFAULT_FONT_FAMILY

    @property
    def primary_hex(self) -> str:
        """Primary colour without the leading '#', as Office XML expects."""
        return self.primary_color.lstrip("#")
