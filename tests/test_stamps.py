import json

from flet_pdf_annotator.stamps import (
    DEFAULT_STAMP_ORDER,
    CustomStamp,
    parse_custom_stamps,
    parse_stamp_styling,
    stamp_suffix_config,
    styled_suffix_config,
)
from flet_pdf_annotator.suffix import SuffixConfig

STAMPS_JSON = json.dumps(
    [
        {"name": "Rejected", "text": "REJECTED", "order": 2, "font_color": "#FF0000"},
        {"name": "Approved", "text": "APPROVED", "order": 1, "time_stamp_suffix_enabled": True},
        {"name": "Draft", "text": "DRAFT"},
        {"name": "", "text": "nameless"},
        {"name": "Empty", "text": ""},
        "not an object",
    ]
)


def test_parse_custom_stamps_sorts_and_filters():
    stamps = parse_custom_stamps(STAMPS_JSON)

    assert [s.name for s in stamps] == ["Approved", "Rejected", "Draft"]
    assert stamps[0].time_stamp_suffix_enabled
    assert stamps[1].font_color == "#FF0000"
    assert stamps[2].order == DEFAULT_STAMP_ORDER


def test_parse_custom_stamps_tolerates_bad_input(caplog):
    assert parse_custom_stamps(None) == []
    assert parse_custom_stamps("   ") == []
    assert parse_custom_stamps('{"name": "x"}') == []
    assert parse_custom_stamps("[{") == []
    assert "Failed to parse custom stamps" in caplog.text


def test_non_numeric_sizes_are_dropped():
    stamps = parse_custom_stamps('[{"name": "A", "text": "a", "font_size": "big", "border_size": 2}]')

    assert stamps[0].font_size is None
    assert stamps[0].border_size == 2


def test_stamp_decides_which_suffixes_apply():
    config = SuffixConfig(fixed_text="JD", append_timestamp=True)
    stamp = CustomStamp(name="A", text="a", fixed_text_suffix_enabled=True)

    resolved = stamp_suffix_config(stamp, config)

    assert resolved.append_fixed_text
    assert not resolved.append_timestamp
    assert resolved.fixed_text == "JD"


def test_styling_json_round_trips_through_subject():
    stamp = CustomStamp(name="Approved", text="APPROVED", background_color="#00FF00", font_size=12)

    styling = parse_stamp_styling(stamp.styling_json())

    assert styling["stamp_name"] == "Approved"
    assert styling["background_color"] == "#00FF00"
    assert styling["font_size"] == 12
    assert styling["fixed_text_suffix_enabled"] is False


def test_plain_subjects_are_not_stamps():
    assert parse_stamp_styling(None) is None
    assert parse_stamp_styling("highlight_region") is None
    assert parse_stamp_styling("{not json") is None
    assert parse_stamp_styling('{"stamp_name": ""}') is None
    assert parse_stamp_styling('{"other": 1}') is None
    assert parse_stamp_styling("Square") is None


def test_suffix_flags_are_read_back_from_styling():
    config = SuffixConfig(fixed_text="JD")
    stamp = CustomStamp(name="OK", text="OK", time_stamp_suffix_enabled=True)

    resolved = styled_suffix_config(parse_stamp_styling(stamp.styling_json()), config)

    assert resolved.append_timestamp
    assert not resolved.append_fixed_text
    assert styled_suffix_config({"stamp_name": "Old"}, config) is None
