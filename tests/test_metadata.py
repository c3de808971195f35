import json
import warnings

import pytest

from config import BubbleSpec, FilterOptions, Locale, PackConfig, load_config
from errors import IOFailure, PackError, UnsupportedLocale
from metadata import ANCHORS, MetadataBuilder, place_bubble

builder = MetadataBuilder()


def field(descriptor, key):
    for line in descriptor.splitlines():
        if line.startswith(key + ":"):
            return line[len(key) + 1 :].strip()
    raise KeyError(key)


def test_header_without_bubble():
    config = PackConfig(
        active_frames=2, active_cycles=3, frame_rate=6, duration=120, active_cooldown=7
    )

    assert builder.build(3, config) == (
        "Filetype: Flipper Animation\n"
        "Version: 1\n"
        "\n"
        "Width: 128\n"
        "Height: 64\n"
        "Passive frames: 3\n"
        "Active frames: 2\n"
        "Frames order: 0 1 2\n"
        "Active cycles: 3\n"
        "Frame rate: 6\n"
        "Duration: 120\n"
        "Active cooldown: 7\n"
        "\n"
        "Bubble slots: 0\n"
    )


def test_frames_order():
    for n in [0, 1, 5, 40]:
        order = field(builder.build(n, PackConfig()), "Frames order")
        assert [int(i) for i in order.split()] == list(range(n))
        assert field(builder.build(n, PackConfig()), "Passive frames") == str(n)


def test_bubble_slot_record():
    bubble = BubbleSpec(text="Hi", locale="topleft", start_frame=2, end_frame=5)
    descriptor = builder.build(8, PackConfig(bubble=bubble))

    assert descriptor.endswith(
        "Bubble slots: 1\n"
        "\n"
        "Slot: 0\n"
        "X: 0\n"
        "Y: 0\n"
        "Text: Hi\n"
        "AlignH: Right\n"
        "AlignV: Bottom\n"
        "StartFrame: 2\n"
        "EndFrame: 5\n"
    )


def test_empty_text_has_no_slot():
    descriptor = builder.build(4, PackConfig(bubble=BubbleSpec(text="")))
    assert field(descriptor, "Bubble slots") == "0"
    assert "Slot:" not in descriptor


def test_bottom_right_two_lines():
    anchor = place_bubble(BubbleSpec(text="abcd\\nefgh", locale=Locale.BOTTOM_RIGHT))

    assert (anchor.x, anchor.y) == (73, 37)
    assert (anchor.align_h, anchor.align_v) == ("Left", "Top")


def test_geometry_clamps_at_zero():
    long_text = "\\n".join(["line"] * 8)
    anchor = place_bubble(BubbleSpec(text=long_text, locale="rightcenter"))
    assert (anchor.x, anchor.y) == (0, 0)


def test_single_character_does_not_move():
    for locale, base in ANCHORS.items():
        anchor = place_bubble(BubbleSpec(text="x", locale=locale))
        assert (anchor.x, anchor.y) == (base.x, base.y)


def test_line_break_is_literal_marker():
    bubble = BubbleSpec(text="ab\ncd", locale="center")
    anchor = place_bubble(bubble)
    # a real newline is just another character
    assert anchor.y == 32
    assert anchor.x == 64 - 6 * 4


def test_default_span():
    bubble = BubbleSpec(text="hello", start_frame=0, end_frame=0)
    descriptor = builder.build(10, PackConfig(bubble=bubble))

    assert field(descriptor, "StartFrame") == "0"
    assert field(descriptor, "EndFrame") == "10"
    assert bubble.span(10) == (0, 10)
    assert BubbleSpec(start_frame=0, end_frame=4).span(10) == (0, 4)


def test_text_written_verbatim():
    descriptor = builder.build(1, PackConfig(bubble=BubbleSpec(text="Hey\\nyou")))
    assert "Text: Hey\\nyou\n" in descriptor


def test_locale_tags():
    assert Locale.from_tag("Bottom-Right") is Locale.BOTTOM_RIGHT
    assert Locale.from_tag("top_left") is Locale.TOP_LEFT
    assert Locale.from_tag("") is Locale.DEFAULT
    assert Locale.from_tag(None) is Locale.DEFAULT
    assert ANCHORS[Locale.DEFAULT] == ANCHORS[Locale.CENTER]


def test_unsupported_locale_falls_back():
    with pytest.warns(UnsupportedLocale):
        bubble = BubbleSpec(text="Hi", locale="diagonal")

    anchor = place_bubble(bubble)
    descriptor = builder.build(2, PackConfig(bubble=bubble))

    assert bubble.locale is Locale.DEFAULT
    assert (anchor.x, anchor.y, anchor.align_h, anchor.align_v) == (
        58,
        32,
        "Center",
        "Bottom",
    )
    assert field(descriptor, "Bubble slots") == "1"


def test_known_locale_does_not_warn():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        BubbleSpec(text="Hi", locale="bottomcenter")


def test_write_descriptor(tmp_path):
    descriptor = builder.build(2, PackConfig(bubble=BubbleSpec(text="Привет")))

    path = builder.write(tmp_path, descriptor)

    raw = path.read_bytes()
    assert path.name == "meta.txt"
    assert not raw.startswith(b"\xef\xbb\xbf")
    assert b"\r\n" not in raw
    assert raw.decode("utf-8") == descriptor


def test_load_config(tmp_path):
    path = tmp_path / "pack.json"
    path.write_text(
        json.dumps(
            {
                "pack": {"frame_rate": 4, "active_cycles": 2},
                "bubble": {"text": "Hi", "locale": "top-right", "end_frame": 3},
                "filters": {"dither": False, "sharpen": 1.5},
            }
        )
    )

    config, filters = load_config(path)

    assert config.frame_rate == 4
    assert config.active_cycles == 2
    assert config.bubble == BubbleSpec(text="Hi", locale=Locale.TOP_RIGHT, end_frame=3)
    assert filters == FilterOptions(dither=False, sharpen=1.5)


def test_load_config_unknown_key(tmp_path):
    path = tmp_path / "pack.json"
    path.write_text(json.dumps({"pack": {"fps": 4}}))

    with pytest.raises(PackError):
        load_config(path)


def test_write_descriptor_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")

    with pytest.raises(IOFailure) as e:
        builder.write(blocker / "meta.txt", builder.build(1, PackConfig()))

    assert e.value.index is None
    assert e.value.path == blocker / "meta.txt"


def test_load_config_rejects_bubble_inside_pack(tmp_path):
    path = tmp_path / "pack.json"
    path.write_text(json.dumps({"pack": {"bubble": {"text": "Hi"}}}))

    with pytest.raises(PackError):
        load_config(path)


def test_load_config_wrong_types(tmp_path):
    path = tmp_path / "pack.json"
    for raw in [
        {"bubble": {"text": "Hi", "locale": 5}},
        {"bubble": {"text": 3}},
        {"bubble": {"text": "Hi", "end_frame": "4"}},
        {"pack": {"frame_rate": "fast"}},
        {"pack": {"duration": True}},
        {"pack": []},
        {"filters": {"dither": "yes"}},
        {"filters": {"sharpen": "1.5"}},
        [],
    ]:
        path.write_text(json.dumps(raw))
        with pytest.raises(PackError):
            load_config(path)


def test_load_config_accepts_integer_sharpen(tmp_path):
    path = tmp_path / "pack.json"
    path.write_text(json.dumps({"filters": {"sharpen": 2, "contrast_stretch": None}}))

    _, filters = load_config(path)

    assert filters.sharpen == 2


def test_locale_must_be_a_name():
    with pytest.raises(PackError):
        Locale.from_tag(5)
