from __future__ import annotations

import argparse
import logging
import sys

from config import BubbleSpec, FilterOptions, PackConfig, load_config, override
from errors import PackError
from pack import convert, make_pack
from preview import save_preview

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gif2bm",
        description="Convert a GIF into packed 1-bit frames and a meta.txt descriptor.",
    )
    parser.add_argument("source", help="GIF to convert, or a frame directory with --frames")
    parser.add_argument("out_dir", help="directory the pack is written to")
    parser.add_argument("--frames", action="store_true",
                        help="source is a directory of index named 1-bit frames")
    parser.add_argument("--config", help="JSON file with pack, bubble and filters sections")
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--magick", default="magick", help="ImageMagick executable")
    parser.add_argument("--preview", help="also write a contact sheet PNG to this path")
    parser.add_argument("-v", "--verbose", action="store_true")

    pack = parser.add_argument_group("pack")
    pack.add_argument("--width", type=int)
    pack.add_argument("--height", type=int)
    pack.add_argument("--active-frames", type=int)
    pack.add_argument("--active-cycles", type=int)
    pack.add_argument("--frame-rate", type=int)
    pack.add_argument("--duration", type=int)
    pack.add_argument("--cooldown", type=int)

    bubble = parser.add_argument_group("bubble")
    bubble.add_argument("--text", help=r"bubble text, use a literal \n for line breaks")
    bubble.add_argument("--locale", help="center, bottomright, topleft, ...")
    bubble.add_argument("--start-frame", type=int)
    bubble.add_argument("--end-frame", type=int)

    filters = parser.add_argument_group("filters")
    filters.add_argument("--contrast-stretch")
    filters.add_argument("--sharpen", type=float)
    filters.add_argument("--dither", action=argparse.BooleanOptionalAction)
    filters.add_argument("--grayscale", action=argparse.BooleanOptionalAction)
    filters.add_argument("--monochrome", action=argparse.BooleanOptionalAction)
    filters.add_argument("--edge-detect", action=argparse.BooleanOptionalAction)
    filters.add_argument("--invert", action=argparse.BooleanOptionalAction)
    return parser


def resolve_config(args) -> tuple[PackConfig, FilterOptions]:
    if args.config:
        config, filters = load_config(args.config)
    else:
        config, filters = PackConfig(), FilterOptions()

    config = override(
        config,
        width=args.width,
        height=args.height,
        active_frames=args.active_frames,
        active_cycles=args.active_cycles,
        frame_rate=args.frame_rate,
        duration=args.duration,
        active_cooldown=args.cooldown,
    )

    bubble_args = dict(
        text=args.text,
        locale=args.locale,
        start_frame=args.start_frame,
        end_frame=args.end_frame,
    )
    if any(v is not None for v in bubble_args.values()):
        config = override(
            config, bubble=override(config.bubble or BubbleSpec(), **bubble_args)
        )

    filters = override(
        filters,
        width=config.width,
        height=config.height,
        contrast_stretch=args.contrast_stretch,
        sharpen=args.sharpen,
        dither=args.dither,
        grayscale=args.grayscale,
        monochrome=args.monochrome,
        edge_detect=args.edge_detect,
        invert=args.invert,
    )
    return config, filters


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s"
    )
    # UnsupportedLocale and other warnings go through the same handler
    logging.captureWarnings(True)

    try:
        config, filters = resolve_config(args)
        if args.frames:
            result = make_pack(args.source, args.out_dir, config, workers=args.workers)
        else:
            result = convert(
                args.source,
                args.out_dir,
                config,
                filters,
                workers=args.workers,
                executable=args.magick,
            )
        if args.preview:
            save_preview(
                args.out_dir,
                args.preview,
                config.width,
                config.height,
                frame_count=result.frame_count,
            )
    except PackError as e:
        logger.error("error: %s", e)
        return 1

    print(f"{result.frame_count} frames -> {result.descriptor_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
