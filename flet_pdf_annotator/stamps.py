"""
Custom stamps - predefined FreeText snippets placed with a click or a drag.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from .suffix import SuffixConfig

logger = logging.getLogger(__name__)

DEFAULT_STAMP_ORDER = 999


@dataclass(frozen=True)
class CustomStamp:
    """A named stamp and its optional styling."""

    name: str
    text: str
    order: int = DEFAULT_STAMP_ORDER
    time_stamp_suffix_enabled: bool = False
    fixed_text_suffix_enabled: bool = False
    background_color: Optional[str] = None
    border_size: Optional[float] = None
    font_color: Optional[str] = None
    font_weight: Optional[str] = None
    font_style: Optional[str] = None
    font_size: Optional[float] = None
    font_name: Optional[str] = None

    def styling_json(self) -> str:
        """Styling metadata stored in the annotation subject."""
        return json.dumps(
            {
                "stamp_name": self.name,
                "time_stamp_suffix_enabled": self.time_stamp_suffix_enabled,
                "fixed_text_suffix_enabled": self.fixed_text_suffix_enabled,
                "background_color": self.background_color,
                "border_size": self.border_size,
                "font_color": self.font_color,
                "font_weight": self.font_weight,
                "font_style": self.font_style,
                "font_size": self.font_size,
                "font_name": self.font_name,
            }
        )


def _optional_str(value) -> Optional[str]:
    return None if value is None else str(value)


def _optional_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def parse_custom_stamps(stamps_json: Optional[str]) -> List[CustomStamp]:
    """Parse a JSON array of stamp objects, sorted by their ``order``.

    Entries without a name or text are dropped. Malformed JSON yields an
    empty list.
    """
    if not stamps_json or not stamps_json.strip():
        return []

    try:
        parsed = json.loads(stamps_json)
    except ValueError as exc:
        logger.warning("Failed to parse custom stamps JSON: %s", exc)
        return []

    if not isinstance(parsed, list):
        logger.warning("Custom stamps must be a JSON array")
        return []

    stamps = []
    for item in parsed:
        if not isinstance(item, dict):
            continue
        order = item.get("order")
        stamp = CustomStamp(
            name=str(item.get("name") or ""),
            text=str(item.get("text") or ""),
            order=order if isinstance(order, int) and not isinstance(order, bool) else DEFAULT_STAMP_ORDER,
            time_stamp_suffix_enabled=bool(item.get("time_stamp_suffix_enabled")),
            fixed_text_suffix_enabled=bool(item.get("fixed_text_suffix_enabled")),
            background_color=_optional_str(item.get("background_color")),
            border_size=_optional_number(item.get("border_size")),
            font_color=_optional_str(item.get("font_color")),
            font_weight=_optional_str(item.get("font_weight")),
            font_style=_optional_str(item.get("font_style")),
            font_size=_optional_number(item.get("font_size")),
            font_name=_optional_str(item.get("font_name")),
        )
        if stamp.name and stamp.text:
            stamps.append(stamp)

    return sorted(stamps, key=lambda s: s.order)


def stamp_suffix_config(stamp: CustomStamp, config: SuffixConfig) -> SuffixConfig:
    """Suffix config for *stamp*: the stamp decides which suffixes apply."""
    return dataclasses.replace(
        config,
        append_fixed_text=stamp.fixed_text_suffix_enabled,
        append_timestamp=stamp.time_stamp_suffix_enabled,
    )


def parse_stamp_styling(subject: Optional[str]) -> Optional[dict]:
    """Stamp styling stored in an annotation subject, or None for a plain subject."""
    if not subject or not subject.lstrip().startswith("{"):
        return None
    try:
        styling = json.loads(subject)
    except ValueError:
        return None
    if not isinstance(styling, dict) or not isinstance(styling.get("stamp_name"), str):
        return None
    if not styling["stamp_name"]:
        return None
    return styling


def styled_suffix_config(styling: dict, config: SuffixConfig) -> Optional[SuffixConfig]:
    """Suffix config recorded in stamp *styling*, or None when it carries no flags."""
    if "time_stamp_suffix_enabled" not in styling and "fixed_text_suffix_enabled" not in styling:
        return None
    return dataclasses.replace(
        config,
        append_fixed_text=bool(styling.get("fixed_text_suffix_enabled")),
        append_timestamp=bool(styling.get("time_stamp_suffix_enabled")),
    )
