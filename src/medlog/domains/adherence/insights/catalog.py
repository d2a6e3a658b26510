"""Insight catalog: canned text for every finding category, read from YAML."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

import yaml

from medlog.domains.adherence.domain_logic.analytics_models import Finding

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "resources" / "insight_catalog.yaml"


class InsightCatalogError(Exception):
    """Raised when the catalog file is missing or malformed."""


class InsightCatalog:
    """Maps finding categories to display text.

    Usage::

        catalog = load_insight_catalog()
        lines = catalog.render_all(findings)
    """

    def __init__(self, templates: dict[str, str], version: str = "") -> None:
        self._templates = templates
        self.version = version

    @property
    def categories(self) -> set[str]:
        return set(self._templates)

    def has(self, category: str) -> bool:
        return category in self._templates

    def render(self, finding: Finding) -> str | None:
        """Render one finding, or None if its category or params don't fit."""
        template = self._templates.get(finding.category)
        if template is None:
            logger.warning("No catalog text for insight category %s", finding.category)
            return None
        try:
            text = template.format(**finding.params)
        except (KeyError, IndexError):
            logger.warning("Missing params %s for insight category %s", finding.params, finding.category)
            return None
        return text[:1].upper() + text[1:]

    def render_all(self, findings: Iterable[Finding]) -> list[str]:
        lines = []
        for finding in findings:
            text = self.render(finding)
            if text:
                lines.append(text)
        return lines


def _parse(data: Any, path: Path) -> InsightCatalog:
    if not isinstance(data, dict) or not isinstance(data.get("categories"), dict):
        raise InsightCatalogError(f"Insight catalog {path} has no 'categories' mapping")
    templates = {}
    for category, text in data["categories"].items():
        if not isinstance(text, str) or not text.strip():
            raise InsightCatalogError(f"Insight catalog {path}: category {category!r} has no text")
        templates[str(category)] = " ".join(text.split())
    return InsightCatalog(templates, version=str(data.get("version", "")))


def load_insight_catalog_file(path: str | Path) -> InsightCatalog:
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise InsightCatalogError(f"Cannot read insight catalog {path}") from exc
    except yaml.YAMLError as exc:
        raise InsightCatalogError(f"Insight catalog {path} is not valid YAML") from exc
    catalog = _parse(data, path)
    logger.info("Loaded insight catalog v%s (%d categories)", catalog.version, len(catalog.categories))
    return catalog


@lru_cache(maxsize=1)
def load_insight_catalog() -> InsightCatalog:
    """The packaged catalog, loaded once per process."""
    return load_insight_catalog_file(DEFAULT_CATALOG_PATH)
