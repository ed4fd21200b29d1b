"""
Aligns the old and new section lists into one set of comparable titles.
"""

import logging

from rate_compare.state import ExtractedSection

logger = logging.getLogger(__name__)


def align_sections(
    old_sections: list[ExtractedSection],
    new_sections: list[ExtractedSection],
) -> tuple[list[str], dict[str, bool]]:
    """Sorted union of both title sets, every title selected."""
    titles = sorted({s["title"] for s in old_sections} | {s["title"] for s in new_sections})
    selection = {title: True for title in titles}

    only_old = len({s["title"] for s in old_sections} - {s["title"] for s in new_sections})
    only_new = len({s["title"] for s in new_sections} - {s["title"] for s in old_sections})
    logger.info(
        "Aligned %d titles (%d only in old, %d only in new)",
        len(titles), only_old, only_new,
    )
    return titles, selection
