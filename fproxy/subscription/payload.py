"""Shape check for the Clash-style YAML config a subscription serves."""

from __future__ import annotations

import yaml


def is_valid_config_payload(text: str) -> bool:
    """Return ``True`` if *text* is a YAML mapping with a non-empty ``proxy-groups`` list.

    Only the top-level shape is checked; group entries are not inspected.
    """
    try:
        document = yaml.safe_load(text)
    except (yaml.YAMLError, ValueError, RecursionError):
        return False
    if not isinstance(document, dict):
        return False
    groups = document.get("proxy-groups")
    return isinstance(groups, list) and len(groups) > 0
