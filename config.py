import json
import logging
import warnings
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Optional

from errors import IOFailure, PackError, UnsupportedLocale

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 128
CANVAS_HEIGHT = 64

# two characters, backslash and "n", not a newline
LINE_BREAK = "\\n"


class Locale(Enum):
    DEFAULT = "default"
    CENTER = "center"
    BOTTOM_CENTER = "bottomcenter"
    TOP_CENTER = "topcenter"
    LEFT_CENTER = "leftcenter"
    RIGHT_CENTER = "rightcenter"
    BOTTOM_RIGHT = "bottomright"
    TOP_RIGHT = "topright"
    BOTTOM_LEFT = "bottomleft"
    TOP_LEFT = "topleft"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "Locale":
        """
        maps a user supplied position name onto a Locale
        case, "-", "_" and spaces are ignored so "Bottom-Right" and "bottomright" match;
        an unknown name warns with UnsupportedLocale and falls back to DEFAULT
        :param str tag: position name, empty or None for the default anchor
        :return Locale:
        """
        if isinstance(tag, Locale):
            return tag
        if tag is None or tag == "":
            return cls.DEFAULT
        if not isinstance(tag, str):
            raise PackError(f"bubble locale must be a name, got {tag!r}")
        key = tag.lower()
        for ch in "-_ ":
            key = key.replace(ch, "")
        try:
            return cls(key)
        except ValueError:
            warnings.warn(UnsupportedLocale(tag), stacklevel=2)
            return cls.DEFAULT


@dataclass(frozen=True)
class BubbleSpec:
    text: str = ""
    locale: Locale = Locale.DEFAULT
    start_frame: int = 0
    end_frame: int = 0

    def __post_init__(self):
        # accept plain strings from config files and the command line
        object.__setattr__(self, "locale", Locale.from_tag(self.locale))

    def span(self, frame_count: int) -> tuple:
        if self.start_frame == 0 and self.end_frame == 0:
            return 0, frame_count
        return self.start_frame, self.end_frame


@dataclass(frozen=True)
class PackConfig:
    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT
    active_frames: int = 0
    active_cycles: int = 0
    frame_rate: int = 8
    duration: int = 3600
    active_cooldown: int = 0
    bubble: Optional[BubbleSpec] = None


@dataclass(frozen=True)
class FilterOptions:
    """Options handed to the external image pipeline. The encoder never reads them."""

    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT
    contrast_stretch: Optional[str] = None
    sharpen: float = 0.0
    dither: bool = True
    grayscale: bool = True
    monochrome: bool = True
    edge_detect: bool = False
    invert: bool = False


def _check_type(value, expected) -> bool:
    if expected is bool:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if expected is float:
        return isinstance(value, (int, float))
    if expected == Optional[str]:
        return value is None or isinstance(value, str)
    if expected in (int, str):
        return isinstance(value, expected)
    # enums and nested sections validate themselves
    return True


def _section(cls, data, name: str, exclude=()):
    if not isinstance(data, dict):
        raise PackError(f"[{name}] must be an object, got {type(data).__name__}")
    allowed = {f.name: f.type for f in fields(cls) if f.name not in exclude}
    unknown = set(data) - set(allowed)
    if unknown:
        raise PackError(f"unknown keys in [{name}]: {', '.join(sorted(unknown))}")
    for key, value in data.items():
        if not _check_type(value, allowed[key]):
            raise PackError(f"[{name}] {key} has the wrong type: {value!r}")
    return cls(**data)


def load_config(path) -> tuple:
    """
    reads a JSON file with optional "pack", "bubble" and "filters" objects
    :param path: config file location
    :return: (PackConfig, FilterOptions)
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise IOFailure(path, e) from e
    except json.JSONDecodeError as e:
        raise PackError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise PackError(f"{path} must hold a JSON object")
    pack = _section(PackConfig, raw.get("pack", {}), "pack", exclude=("bubble",))
    if "bubble" in raw:
        pack = replace(pack, bubble=_section(BubbleSpec, raw["bubble"], "bubble"))
    filters = _section(FilterOptions, raw.get("filters", {}), "filters")
    # keep the pipeline canvas in step with the pack canvas
    filters = replace(filters, width=pack.width, height=pack.height)
    logger.debug("loaded config from %s", path)
    return pack, filters


def override(obj, **changes):
    """dataclasses.replace that ignores values left as None"""
    changes = {k: v for k, v in changes.items() if v is not None}
    return replace(obj, **changes) if changes else obj
