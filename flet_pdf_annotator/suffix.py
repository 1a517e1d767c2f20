"""
Text suffix formatting for annotation contents.

When a manual or stamp annotation's text is finalized, a fixed text and/or a
timestamp may be appended. ``strip`` removes exactly what ``compose`` added for
the same config, so re-editing an annotation never accumulates suffixes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, List, Optional, Pattern, Tuple


class SuffixPlacement(Enum):
    """Where suffixes go relative to the base text."""

    ADJACENT = "adjacent"  # same line, space separated
    BELOW_SINGLE_LINE = "below_single_line"  # next line, space separated
    BELOW_MULTI_LINE = "below_multi_line"  # one suffix per line


@dataclass(frozen=True)
class SuffixConfig:
    """How suffixes are appended to annotation text."""

    fixed_text: str = ""
    append_fixed_text: bool = True
    append_timestamp: bool = False
    enclose_in_brackets: bool = True
    brackets: str = "[]"
    placement: SuffixPlacement = SuffixPlacement.BELOW_MULTI_LINE
    timestamp_format: str = "%Y-%m-%dT%H:%M:%SZ"

    def __post_init__(self):
        if isinstance(self.placement, str):
            object.__setattr__(self, "placement", SuffixPlacement(self.placement))

    @property
    def opening_bracket(self) -> str:
        return self.brackets[0] if self.brackets else "["

    @property
    def closing_bracket(self) -> str:
        return self.brackets[1] if len(self.brackets) > 1 else "]"

    @property
    def has_fixed_suffix(self) -> bool:
        return self.append_fixed_text and bool(self.fixed_text.strip())

    @property
    def is_active(self) -> bool:
        return self.has_fixed_suffix or self.append_timestamp


# strftime directive -> regex for the text it produces
_DIRECTIVE_PATTERNS = {
    "Y": r"\d{4}",
    "G": r"\d{4}",
    "y": r"\d{2}",
    "m": r"\d{2}",
    "d": r"\d{2}",
    "e": r" ?\d{1,2}",
    "H": r"\d{2}",
    "I": r"\d{2}",
    "M": r"\d{2}",
    "S": r"\d{2}",
    "f": r"\d{6}",
    "j": r"\d{3}",
    "U": r"\d{2}",
    "W": r"\d{2}",
    "V": r"\d{2}",
    "u": r"\d",
    "w": r"\d",
    "F": r"\d{4}-\d{2}-\d{2}",
    "T": r"\d{2}:\d{2}:\d{2}",
    "R": r"\d{2}:\d{2}",
    "D": r"\d{2}/\d{2}/\d{2}",
    "p": r"(?:AM|PM|am|pm)",
    "z": r"(?:[+-]\d{4}(?:\d{2}(?:\.\d{6})?)?)?",
    # Abbreviations (CET), fixed offsets (UTC+01:00) or bare offsets (-03)
    "Z": r"(?:[A-Za-z]+(?:[+-]\d{2}:\d{2}(?::\d{2}(?:\.\d{6})?)?)?|[+-]\d{2}(?:\d{2})?)?",
    "a": r"[A-Za-z]+",
    "A": r"[A-Za-z]+",
    "b": r"[A-Za-z]+",
    "B": r"[A-Za-z]+",
    "h": r"[A-Za-z]+",
    "%": "%",
}

_NUMERIC_DIRECTIVES = frozenset("YGymdeHIMSfjUWVuw")

# glibc padding and case flags, e.g. %-d or %_H
_FLAGS = "-_0^#"


def _format_tokens(timestamp_format: str) -> Iterator[Tuple[str, str, str]]:
    """Split a strftime format into (literal, flags, directive) tokens."""
    i = 0
    size = len(timestamp_format)
    while i < size:
        char = timestamp_format[i]
        if char == "%":
            j = i + 1
            while j < size and timestamp_format[j] in _FLAGS:
                j += 1
            if j < size:
                yield "", timestamp_format[i + 1 : j], timestamp_format[j]
                i = j + 1
                continue
        yield char, "", ""
        i += 1


def unsupported_directives(timestamp_format: str) -> List[str]:
    """Directives in *timestamp_format* whose output ``strip`` cannot recognize."""
    return [
        f"%{flags}{directive}"
        for _, flags, directive in _format_tokens(timestamp_format)
        if directive and directive not in _DIRECTIVE_PATTERNS
    ]


def timestamp_pattern(timestamp_format: str) -> str:
    """Regex matching any timestamp rendered with *timestamp_format*."""
    parts: List[str] = []
    for literal, flags, directive in _format_tokens(timestamp_format):
        if not directive:
            parts.append(re.escape(literal))
        elif flags and directive in _NUMERIC_DIRECTIVES:
            parts.append(r" *\d+")
        else:
            parts.append(_DIRECTIVE_PATTERNS.get(directive, r".+?"))
    return "".join(parts)


def format_timestamp(config: SuffixConfig, now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    return now.strftime(config.timestamp_format)


def _enclose(value: str, config: SuffixConfig) -> str:
    if config.enclose_in_brackets:
        return f"{config.opening_bracket}{value}{config.closing_bracket}"
    return value


def _separators(config: SuffixConfig):
    """(separator between base text and suffixes, separator between suffixes)."""
    if config.placement == SuffixPlacement.ADJACENT:
        return " ", " "
    if config.placement == SuffixPlacement.BELOW_SINGLE_LINE:
        return "\n", " "
    return "\n", "\n"


def suffix_parts(config: SuffixConfig, now: Optional[datetime] = None) -> List[str]:
    """The suffix strings for *config*, fixed text first, then timestamp."""
    parts = []
    if config.has_fixed_suffix:
        parts.append(_enclose(config.fixed_text.strip(), config))
    if config.append_timestamp:
        parts.append(_enclose(format_timestamp(config, now), config))
    return parts


def compose(base_text: str, config: SuffixConfig, now: Optional[datetime] = None) -> str:
    """Append the configured suffixes to *base_text*.

    Example:
        >>> cfg = SuffixConfig(fixed_text="JD", append_timestamp=True,
        ...                    placement=SuffixPlacement.ADJACENT)
        >>> compose("Approved", cfg, datetime(2025, 1, 15, 10, tzinfo=timezone.utc))
        'Approved [JD] [2025-01-15T10:00:00Z]'
    """
    parts = suffix_parts(config, now)
    if not parts:
        return base_text
    lead, between = _separators(config)
    block = between.join(parts)
    if not base_text:
        return block
    return f"{base_text}{lead}{block}"


def _suffix_regex(config: SuffixConfig) -> Optional[Pattern[str]]:
    part_patterns = []
    if config.has_fixed_suffix:
        part_patterns.append(re.escape(_enclose(config.fixed_text.strip(), config)))
    if config.append_timestamp:
        pattern = timestamp_pattern(config.timestamp_format)
        if config.enclose_in_brackets:
            pattern = (
                re.escape(config.opening_bracket)
                + pattern
                + re.escape(config.closing_bracket)
            )
        part_patterns.append(pattern)
    if not part_patterns:
        return None
    lead, between = _separators(config)
    block = re.escape(between).join(part_patterns)
    # Greedy base: the shortest trailing suffix block wins.
    return re.compile(
        rf"\A(?:(?P<base>.*){re.escape(lead)})?{block}\Z",
        re.DOTALL,
    )


def strip(text: str, config: SuffixConfig) -> str:
    """Remove suffixes that :func:`compose` added under the same *config*.

    Text without a matching suffix block is returned unchanged.
    """
    regex = _suffix_regex(config)
    if regex is None:
        return text
    match = regex.match(text)
    if match is None:
        return text
    return match.group("base") or ""


class TextSuffixFormatter:
    """Binds a SuffixConfig and a clock; used by the overlay when text is finalized."""

    def __init__(self, config: Optional[SuffixConfig] = None, clock=None):
        self.config = config or SuffixConfig()
        self._clock = clock

    def _now(self) -> Optional[datetime]:
        return self._clock() if self._clock else None

    def compose(self, base_text: str, config: Optional[SuffixConfig] = None) -> str:
        return compose(base_text, config or self.config, self._now())

    def strip(self, text: str, config: Optional[SuffixConfig] = None) -> str:
        return strip(text, config or self.config)

    def recompose(self, text: str, config: Optional[SuffixConfig] = None) -> str:
        """Strip any previous suffix from *text*, then append a fresh one."""
        config = config or self.config
        return compose(strip(text, config), config, self._now())
