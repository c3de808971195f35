import logging
from dataclasses import dataclass
from pathlib import Path

from config import LINE_BREAK, BubbleSpec, Locale, PackConfig
from errors import IOFailure

logger = logging.getLogger(__name__)

DESCRIPTOR_NAME = "meta.txt"

LINE_HEIGHT = 12
CHAR_WIDTH = 6


@dataclass(frozen=True)
class Anchor:
    x: int
    y: int
    align_h: str
    align_v: str


# base positions on the 128x64 canvas
ANCHORS = {
    Locale.CENTER: Anchor(64, 32, "Center", "Bottom"),
    Locale.BOTTOM_CENTER: Anchor(64, 49, "Center", "Top"),
    Locale.TOP_CENTER: Anchor(64, 0, "Center", "Bottom"),
    Locale.LEFT_CENTER: Anchor(0, 32, "Right", "Center"),
    Locale.RIGHT_CENTER: Anchor(115, 32, "Left", "Center"),
    Locale.BOTTOM_RIGHT: Anchor(115, 49, "Left", "Top"),
    Locale.TOP_RIGHT: Anchor(115, 0, "Left", "Bottom"),
    Locale.BOTTOM_LEFT: Anchor(0, 49, "Right", "Top"),
    Locale.TOP_LEFT: Anchor(0, 0, "Right", "Bottom"),
}
ANCHORS[Locale.DEFAULT] = ANCHORS[Locale.CENTER]


def place_bubble(bubble: BubbleSpec) -> Anchor:
    """
    moves the locale anchor so the text fits on the canvas
    every extra line lifts the bubble by LINE_HEIGHT and every character after the
    first shifts it left by CHAR_WIDTH; the character count is taken over the whole
    text with line breaks removed, not the longest line. both clamp at 0
    :param BubbleSpec bubble:
    :return Anchor: adjusted position and alignment
    """
    base = ANCHORS[bubble.locale]
    x, y = base.x, base.y

    lines = len(bubble.text.split(LINE_BREAK))
    if lines > 1:
        y = max(0, y - LINE_HEIGHT * (lines - 1))

    chars = len(bubble.text.replace(LINE_BREAK, ""))
    if chars > 1:
        x = max(0, x - CHAR_WIDTH * (chars - 1))

    return Anchor(x, y, base.align_h, base.align_v)


@dataclass(frozen=True)
class MetadataBuilder:
    file_type: str = "Flipper Animation"
    version: int = 1

    def build(self, frame_count: int, config: PackConfig) -> str:
        bubble = config.bubble if config.bubble and config.bubble.text else None

        lines = [
            f"Filetype: {self.file_type}",
            f"Version: {self.version}",
            "",
            f"Width: {config.width}",
            f"Height: {config.height}",
            f"Passive frames: {frame_count}",
            f"Active frames: {config.active_frames}",
            f"Frames order: {' '.join(str(i) for i in range(frame_count))}".rstrip(),
            f"Active cycles: {config.active_cycles}",
            f"Frame rate: {config.frame_rate}",
            f"Duration: {config.duration}",
            f"Active cooldown: {config.active_cooldown}",
            "",
            f"Bubble slots: {1 if bubble else 0}",
        ]

        if bubble:
            anchor = place_bubble(bubble)
            start, end = bubble.span(frame_count)
            lines += [
                "",
                "Slot: 0",
                f"X: {anchor.x}",
                f"Y: {anchor.y}",
                f"Text: {bubble.text}",
                f"AlignH: {anchor.align_h}",
                f"AlignV: {anchor.align_v}",
                f"StartFrame: {start}",
                f"EndFrame: {end}",
            ]

        return "\n".join(lines) + "\n"

    def write(self, path, descriptor: str) -> Path:
        path = Path(path)
        if path.is_dir():
            path = path / DESCRIPTOR_NAME
        try:
            # bytes keep the output free of a BOM and of platform newline translation
            path.write_bytes(descriptor.encode("utf-8"))
        except OSError as e:
            raise IOFailure(path, e) from e
        logger.info("wrote %s", path)
        return path
