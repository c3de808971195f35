import logging
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from config import FilterOptions, PackConfig
from encoder import Encoder, FrameEncoder
from metadata import DESCRIPTOR_NAME, MetadataBuilder
from pipeline import ImagePipeline
from sink import DirectorySink

logger = logging.getLogger(__name__)


@dataclass
class PackResult:
    frame_count: int
    frame_paths: List[Path]
    descriptor_path: Path


def make_pack(
    frames_dir,
    out_dir,
    config: PackConfig,
    workers: int = 1,
    cancel: Optional[threading.Event] = None,
) -> PackResult:
    """
    encodes every frame in frames_dir into out_dir, then writes the descriptor
    the descriptor is only written once all frames made it to disk
    """
    sink = DirectorySink(Path(out_dir))
    encoder = Encoder(
        frame_encoder=FrameEncoder(config.width, config.height),
        sink=sink,
        workers=workers,
        cancel=cancel if cancel is not None else threading.Event(),
    )
    frame_count = encoder.encode(frames_dir)
    for path in sink.prune():
        logger.info("removed stale %s", path.name)

    builder = MetadataBuilder()
    descriptor = builder.build(frame_count, config)
    descriptor_path = builder.write(Path(out_dir) / DESCRIPTOR_NAME, descriptor)

    logger.info("pack written to %s (%d frames)", out_dir, frame_count)
    return PackResult(frame_count, list(sink.written), descriptor_path)


def convert(
    source,
    out_dir,
    config: PackConfig,
    filters: FilterOptions,
    workers: int = 1,
    executable: str = "magick",
    cancel: Optional[threading.Event] = None,
) -> PackResult:
    """runs the image pipeline into a scratch directory and packs its output"""
    pipeline = ImagePipeline(options=filters, executable=executable)
    with tempfile.TemporaryDirectory(prefix="gif2bm-") as scratch:
        pipeline.run(source, scratch)
        return make_pack(scratch, out_dir, config, workers=workers, cancel=cancel)
