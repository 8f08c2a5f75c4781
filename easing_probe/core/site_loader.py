# easing_probe/core/site_loader.py
from __future__ import annotations

"""Site categories
-----------------
Pydantic schema and YAML loader for the curated site lists. A category is
either a mapping with `urls` (and an optional description) or a bare list of
URLs. Multi-document files are merged in order; `${VAR}` placeholders are
substituted from the environment.
"""

import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from easing_probe.utils.config import get_settings


BUNDLED_SITES = Path(__file__).resolve().parent.parent / "sites.yaml"
ALL_TARGET = "all"

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class SiteCategory(BaseModel):
    name: str
    description: Optional[str] = None
    urls: List[str] = Field(default_factory=list)

    @field_validator("urls")
    @classmethod
    def _http_urls(cls, v: List[str]) -> List[str]:
        out = []
        for url in v:
            url = str(url).strip()
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"not an http(s) URL: {url!r}")
            out.append(url)
        return out


class SiteCatalog(BaseModel):
    categories: Dict[str, SiteCategory] = Field(default_factory=dict)

    def names(self) -> List[str]:
        return list(self.categories)

    def all_urls(self) -> List[str]:
        return _unique(url for cat in self.categories.values() for url in cat.urls)

    def resolve(self, targets: Iterable[str]) -> List[str]:
        """
        Expand CLI targets into URLs, first occurrence wins.
        A target is a URL, a category name, or `all`.
        """
        urls: List[str] = []
        for target in targets:
            target = target.strip()
            if target.startswith(("http://", "https://")):
                urls.append(target)
            elif target == ALL_TARGET:
                urls.extend(self.all_urls())
            elif target in self.categories:
                urls.extend(self.categories[target].urls)
            else:
                known = ", ".join(self.names()) or "none"
                raise ValueError(f"Unknown target '{target}' (categories: {known})")
        return _unique(urls)


def _unique(urls: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(urls))


def _subst_env(obj):
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(0)), obj)
    if isinstance(obj, list):
        return [_subst_env(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _subst_env(v) for k, v in obj.items()}
    return obj


def _normalize(name: str, value) -> dict:
    if value is None:
        return {"name": name, "urls": []}
    if isinstance(value, list):
        return {"name": name, "urls": value}
    if isinstance(value, dict):
        return {"name": name, "description": value.get("description"), "urls": value.get("urls") or []}
    raise ValueError(f"Category '{name}' must be a list of URLs or a mapping with 'urls'")


def default_sites_path() -> Path:
    configured = get_settings().SITES_FILE
    return configured if configured else BUNDLED_SITES


def load_sites(path: Path | str | None = None) -> SiteCatalog:
    """Load one or more YAML documents of categories into a single catalog."""
    sites_path = Path(path) if path else default_sites_path()
    if not sites_path.exists():
        raise FileNotFoundError(f"Sites file not found: {sites_path}")
    try:
        docs = list(yaml.safe_load_all(sites_path.read_text(encoding="utf-8")))
    except yaml.YAMLError as ye:
        raise ValueError(f"YAML parse error in {sites_path}: {ye}") from ye

    categories: Dict[str, SiteCategory] = {}
    for idx, data in enumerate(docs, start=1):
        if data is None:
            continue
        if not isinstance(data, dict):
            raise ValueError(f"Document {idx} in {sites_path} must be a mapping of categories.")
        data = _subst_env(data)
        for name, value in data.items():
            try:
                category = SiteCategory.model_validate(_normalize(str(name), value))
            except ValidationError as ve:
                lines = [f"Invalid category '{name}' in '{sites_path}' (document {idx}):"]
                for e in ve.errors():
                    loc = ".".join(str(p) for p in e.get("loc", []))
                    lines.append(f"  - {loc}: {e.get('msg', 'invalid value')}")
                raise ValueError("\n".join(lines)) from ve
            if category.name in categories:
                existing = categories[category.name]
                existing.urls = _unique(existing.urls + category.urls)
                existing.description = existing.description or category.description
            else:
                categories[category.name] = category
    return SiteCatalog(categories=categories)


__all__ = ["SiteCategory", "SiteCatalog", "load_sites", "default_sites_path", "BUNDLED_SITES"]
