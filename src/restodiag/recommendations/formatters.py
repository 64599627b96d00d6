"""Template rendering for suggestion text."""
from __future__ import annotations

import logging
from typing import Mapping


logger = logging.getLogger("restodiag.recommendations.formatters")


class SafeDict(dict):
    """Dictionary returning the placeholder when keys are missing."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render(template: str, metrics: Mapping[str, float]) -> str:
    """Fill ``{metric:spec}`` placeholders; unknown names are left in place.

    A format spec applied to a missing metric cannot be rendered, so the raw
    template is returned in that case.
    """
    if not template:
        return ""
    try:
        return template.format_map(SafeDict(metrics))
    except (ValueError, IndexError) as exc:
        logger.warning("Could not render template %r: %s", template, exc)
        return template
