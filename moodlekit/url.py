"""Deterministic Moodle URL construction (no network)."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote, urlencode

from moodlekit.config.schema import SiteConfig


def relative_url(path: str, site: SiteConfig, params: dict[str, Any] | None = None) -> str:
    """Absolute URL for a path under wwwroot."""
    url = f"{site.wwwroot.rstrip('/')}/{path.lstrip('/')}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def image_url(key: str, component: str, site: SiteConfig) -> str:
    """URL of a theme image, served by theme/image.php."""
    component = component or "core"
    if site.slasharguments:
        path = f"/theme/image.php/{quote(site.theme, safe='')}/{quote(component, safe='')}/{site.themerev}/{quote(key)}"
        return relative_url(path, site)
    return relative_url(
        "/theme/image.php",
        site,
        {"theme": site.theme, "component": component, "rev": site.themerev, "image": key},
    )
