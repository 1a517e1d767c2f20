import json
from configparser import ConfigParser

from flet_pdf_annotator.config import (
    DEFAULT_HIGHLIGHT_STYLE,
    AnnotatorConfig,
    config_from_parser,
    load_config,
)
from flet_pdf_annotator.suffix import SuffixPlacement

CONFIG_TEXT = """
[viewer]
annotation_text_suffix_fixed_text = JD
append_timestamp_to_text_edits = yes
add_enclosing_brackets_to_suffixes = false
suffix_enclosing_brackets = ()
suffix_text_position = adjacent
timestamp_format = %Y-%m-%d
author = Jane
min_drag_size_px = 8
clamp_to_page = off

[highlight_annotation]
highlight_fill_color = #00ff00
highlight_fill_opacity = 1.5

[square_annotation]
square_border_color = blue

[freetext_annotation]
freetext_text_color = #123456

[fonts]
freetext_font_size_default = 18

[context_menu]
right_click_custom_stamps = [{"name": "Approved", "text": "APPROVED", "order": 1}]
"""


def _parse(text: str) -> AnnotatorConfig:
    parser = ConfigParser(interpolation=None)
    parser.read_string(text)
    return config_from_parser(parser)


def test_defaults_match_empty_file():
    assert _parse("") == AnnotatorConfig()


def test_full_config():
    config = _parse(CONFIG_TEXT)

    assert config.suffix.fixed_text == "JD"
    assert config.suffix.append_timestamp is True
    assert config.suffix.enclose_in_brackets is False
    assert config.suffix.brackets == "()"
    assert config.suffix.placement == SuffixPlacement.ADJACENT
    assert config.suffix.timestamp_format == "%Y-%m-%d"
    assert config.interaction.author == "Jane"
    assert config.interaction.min_drag_size_px == 8
    assert config.interaction.clamp_to_page is False
    assert config.highlight.background_color == "#00FF00"
    assert config.highlight.background_opacity == 1.0
    assert config.highlight.border_color == DEFAULT_HIGHLIGHT_STYLE.border_color
    assert config.freetext.text_color == "#123456"
    assert config.freetext.font_size == 18
    assert config.stamp("Approved").text == "APPROVED"
    assert config.stamp("Missing") is None


def test_invalid_values_fall_back_with_warning(caplog):
    config = _parse(CONFIG_TEXT)

    assert config.square.border_color == AnnotatorConfig().square.border_color
    assert "Invalid color 'blue'" in caplog.text


def test_invalid_placement_and_brackets(caplog):
    config = _parse(
        "[viewer]\nsuffix_text_position = sideways\nsuffix_enclosing_brackets = [[]]\n"
        "min_drag_size_px = tiny\nclamp_to_page = maybe\n"
    )

    assert config.suffix.placement == SuffixPlacement.BELOW_MULTI_LINE
    assert config.suffix.brackets == "[]"
    assert config.interaction.min_drag_size_px == 5
    assert config.interaction.clamp_to_page is True
    assert "Unknown suffix_text_position 'sideways'" in caplog.text


def test_load_config(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text(CONFIG_TEXT, encoding="utf-8")

    config = load_config(path)

    assert config.suffix.fixed_text == "JD"
    assert [s.name for s in config.custom_stamps] == ["Approved"]


def test_missing_file_yields_defaults(tmp_path, caplog):
    config = load_config(tmp_path / "absent.ini")

    assert config == AnnotatorConfig()
    assert "not found" in caplog.text


def test_bad_stamp_json_is_ignored():
    config = _parse("[context_menu]\nright_click_custom_stamps = " + json.dumps({"name": "x"}) + "\n")

    assert config.custom_stamps == ()


def test_unsupported_timestamp_format_falls_back(caplog):
    config = _parse("[viewer]\ntimestamp_format = %Y %c\n")

    assert config.suffix.timestamp_format == AnnotatorConfig().suffix.timestamp_format
    assert "unsupported %c" in caplog.text
