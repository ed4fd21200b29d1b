"""
pipeline/numeric.py — numeric-only comparison of `key = value` lines.

Values are reduced to their numbers (thousands separators stripped), so
"1,250.00" and "1250.00" compare equal while any other text around the
number is ignored.
"""

import logging
import re

from rate_compare.state import NumericChange

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"-?\d+(?:,\d{3})*(?:\.\d+)?")

MISSING_VALUE = "0"


def extract_numerics(text: str) -> list[str]:
    """All decimal numbers in text, without thousands separators."""
    return [m.replace(",", "") for m in _NUMBER_RE.findall(text)]


def parse_key_values(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip() or "=" not in line:
            continue
        key, _, raw_value = line.partition("=")
        key = key.strip()
        numbers = extract_numerics(raw_value)
        if not key or not numbers:
            continue
        values[key] = " ".join(numbers)
    return values


def compare_numeric(old_text: str, new_text: str) -> list[NumericChange]:
    """Changed keys only. A key missing on one side counts as "0" there."""
    old_map = parse_key_values(old_text)
    new_map = parse_key_values(new_text)

    keys = list(old_map)
    keys.extend(k for k in new_map if k not in old_map)

    changes: list[NumericChange] = []
    for key in keys:
        old_value = old_map.get(key, MISSING_VALUE)
        new_value = new_map.get(key, MISSING_VALUE)
        if old_value != new_value:
            changes.append(NumericChange(category=key, old_value=old_value, new_value=new_value))

    logger.debug("Numeric compare: %d keys, %d changed", len(keys), len(changes))
    return changes
