"""
Annotator configuration.

Configuration is plain data handed to the overlay, the highlight registry and
the formatter by the host. ``load_config`` reads the INI layout used by the
viewer's config file; the core itself never loads anything.
"""

from __future__ import annotations

import configparser
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .stamps import CustomStamp, parse_custom_stamps
from .suffix import SuffixConfig, SuffixPlacement, unsupported_directives
from .types import HighlightStyle

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


@dataclass(frozen=True)
class InteractionConfig:
    """Pointer interaction thresholds and defaults for new annotations."""

    min_drag_size_px: float = 5.0
    handle_size_px: float = 6.0  # half side of a handle's square hit zone
    click_epsilon_px: float = 3.0
    clamp_to_page: bool = True
    author: str = "User"
    freetext_placeholder_size: Tuple[float, float] = (100.0, 30.0)
    default_freetext_text: str = ""


@dataclass(frozen=True)
class SquareStyle:
    fill_color: str = "#FF0000"
    fill_opacity: float = 0.2
    border_color: str = "#FF0000"


@dataclass(frozen=True)
class FreeTextStyle:
    text_color: str = "#000000"
    font_size: float = 14.0
    font_family: str = "Arial"
    padding_horizontal: float = 4.0
    padding_vertical: float = 2.0
    border_color: str = "#003366"
    border_width: float = 1.0
    background_color: str = "#E6F3FF"
    background_opacity: float = 0.1


DEFAULT_HIGHLIGHT_STYLE = HighlightStyle(
    border_color="#FFD700",
    background_color="#FFFF00",
    background_opacity=0.3,
    border_width=1.0,
)


@dataclass(frozen=True)
class AnnotatorConfig:
    """Everything the annotator core consumes from the host."""

    suffix: SuffixConfig = field(default_factory=SuffixConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    highlight: HighlightStyle = DEFAULT_HIGHLIGHT_STYLE
    square: SquareStyle = field(default_factory=SquareStyle)
    freetext: FreeTextStyle = field(default_factory=FreeTextStyle)
    custom_stamps: Tuple[CustomStamp, ...] = ()

    def stamp(self, name: str) -> Optional[CustomStamp]:
        for stamp in self.custom_stamps:
            if stamp.name == name:
                return stamp
        return None


# INI parsing


def _get(parser: configparser.ConfigParser, section: str, key: str) -> Optional[str]:
    if not parser.has_option(section, key):
        return None
    value = parser.get(section, key, raw=True).strip()
    return value if value else None


def _color(parser, section: str, key: str, default: str) -> str:
    value = _get(parser, section, key)
    if value is None:
        return default
    if not _HEX_COLOR.match(value):
        logger.warning("Invalid color %r for [%s] %s, using %s", value, section, key, default)
        return default
    return value.upper()


def _number(parser, section: str, key: str, default: float) -> float:
    value = _get(parser, section, key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid number %r for [%s] %s, using %s", value, section, key, default)
        return default


def _opacity(parser, section: str, key: str, default: float) -> float:
    return min(1.0, max(0.0, _number(parser, section, key, default)))


def _boolean(parser, section: str, key: str, default: bool) -> bool:
    value = _get(parser, section, key)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in ("true", "yes", "1", "on"):
        return True
    if lowered in ("false", "no", "0", "off"):
        return False
    logger.warning("Invalid boolean %r for [%s] %s, using %s", value, section, key, default)
    return default


def _string(parser, section: str, key: str, default: str) -> str:
    value = _get(parser, section, key)
    return default if value is None else value


def config_from_parser(parser: configparser.ConfigParser) -> AnnotatorConfig:
    """Build an AnnotatorConfig from already-parsed INI sections."""
    defaults = AnnotatorConfig()

    placement_value = _string(
        parser, "viewer", "suffix_text_position", defaults.suffix.placement.value
    )
    try:
        placement = SuffixPlacement(placement_value)
    except ValueError:
        logger.warning("Unknown suffix_text_position %r, using default", placement_value)
        placement = defaults.suffix.placement

    brackets = _string(parser, "viewer", "suffix_enclosing_brackets", defaults.suffix.brackets)
    if len(brackets) != 2:
        logger.warning("suffix_enclosing_brackets must be two characters, got %r", brackets)
        brackets = defaults.suffix.brackets

    timestamp_format = _string(
        parser, "viewer", "timestamp_format", defaults.suffix.timestamp_format
    )
    unsupported = unsupported_directives(timestamp_format)
    if unsupported:
        logger.warning(
            "timestamp_format %r uses unsupported %s, using default",
            timestamp_format,
            ", ".join(unsupported),
        )
        timestamp_format = defaults.suffix.timestamp_format

    suffix = SuffixConfig(
        fixed_text=_string(parser, "viewer", "annotation_text_suffix_fixed_text", ""),
        append_timestamp=_boolean(
            parser, "viewer", "append_timestamp_to_text_edits", defaults.suffix.append_timestamp
        ),
        enclose_in_brackets=_boolean(
            parser,
            "viewer",
            "add_enclosing_brackets_to_suffixes",
            defaults.suffix.enclose_in_brackets,
        ),
        brackets=brackets,
        placement=placement,
        timestamp_format=timestamp_format,
    )

    d_interaction = defaults.interaction
    interaction = InteractionConfig(
        min_drag_size_px=_number(
            parser, "viewer", "min_drag_size_px", d_interaction.min_drag_size_px
        ),
        handle_size_px=_number(parser, "viewer", "handle_size_px", d_interaction.handle_size_px),
        click_epsilon_px=_number(
            parser, "viewer", "click_epsilon_px", d_interaction.click_epsilon_px
        ),
        clamp_to_page=_boolean(parser, "viewer", "clamp_to_page", d_interaction.clamp_to_page),
        author=_string(parser, "viewer", "author", d_interaction.author),
    )

    d_highlight = defaults.highlight
    highlight = HighlightStyle(
        border_color=_color(
            parser, "highlight_annotation", "highlight_border_color", d_highlight.border_color
        ),
        background_color=_color(
            parser, "highlight_annotation", "highlight_fill_color", d_highlight.background_color
        ),
        background_opacity=_opacity(
            parser,
            "highlight_annotation",
            "highlight_fill_opacity",
            d_highlight.background_opacity,
        ),
        border_width=_number(
            parser, "highlight_annotation", "highlight_border_width", d_highlight.border_width
        ),
    )

    d_square = defaults.square
    square = SquareStyle(
        fill_color=_color(parser, "square_annotation", "square_fill_color", d_square.fill_color),
        fill_opacity=_opacity(
            parser, "square_annotation", "square_fill_opacity", d_square.fill_opacity
        ),
        border_color=_color(
            parser, "square_annotation", "square_border_color", d_square.border_color
        ),
    )

    d_text = defaults.freetext
    freetext = FreeTextStyle(
        text_color=_color(
            parser, "freetext_annotation", "freetext_text_color", d_text.text_color
        ),
        font_size=_number(parser, "fonts", "freetext_font_size_default", d_text.font_size),
        font_family=_string(parser, "fonts", "freetext_font_family", d_text.font_family),
        padding_horizontal=_number(
            parser,
            "freetext_annotation",
            "freetext_padding_horizontal",
            d_text.padding_horizontal,
        ),
        padding_vertical=_number(
            parser, "freetext_annotation", "freetext_padding_vertical", d_text.padding_vertical
        ),
        border_color=_color(
            parser, "freetext_annotation", "freetext_border_color", d_text.border_color
        ),
        border_width=_number(
            parser, "freetext_annotation", "freetext_border_width", d_text.border_width
        ),
        background_color=_color(
            parser, "freetext_annotation", "freetext_background_color", d_text.background_color
        ),
        background_opacity=_opacity(
            parser,
            "freetext_annotation",
            "freetext_background_opacity",
            d_text.background_opacity,
        ),
    )

    stamps: List[CustomStamp] = parse_custom_stamps(
        _get(parser, "context_menu", "right_click_custom_stamps")
    )

    return AnnotatorConfig(
        suffix=suffix,
        interaction=interaction,
        highlight=highlight,
        square=square,
        freetext=freetext,
        custom_stamps=tuple(stamps),
    )


def load_config(path: Union[str, Path]) -> AnnotatorConfig:
    """Load an INI config file; a missing file yields the defaults."""
    parser = configparser.ConfigParser(interpolation=None)
    path = Path(path)
    if not path.exists():
        logger.warning("Config file %s not found, using defaults", path)
        return AnnotatorConfig()
    with path.open(encoding="utf-8") as fh:
        parser.read_file(fh)
    return config_from_parser(parser)
