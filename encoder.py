import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from config import CANVAS_HEIGHT, CANVAS_WIDTH
from errors import FrameSequenceError, InvalidFrameFormat, PackCancelled
from functions import (
    RAW_MARKER,
    foreground_mask,
    list_frames,
    pack_row,
    packed_size,
    read_frame,
    row_stride,
)
from sink import FrameSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameEncoder:
    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT

    def encode(self, frame: np.ndarray, index: Optional[int] = None) -> bytes:
        """
        packs one two-colour raster frame
        layout: a 0x00 marker byte, then ceil(width / 8) bytes per row, rows top to bottom
        :param numpy.ndarray frame: (H, W) or (H, W, C) raster, black is foreground
        :param int index: frame index, only used in error messages
        :return bytes: the packed frame
        """
        if frame.shape[:2] != (self.height, self.width):
            raise InvalidFrameFormat(
                f"expected {self.width}x{self.height}, "
                f"got {frame.shape[1]}x{frame.shape[0]}",
                index,
            )
        mask = foreground_mask(frame, index)

        stride = row_stride(self.width)
        out = bytearray(packed_size(self.width, self.height))
        out[0] = RAW_MARKER
        for y in range(self.height):
            start = 1 + y * stride
            out[start : start + stride] = pack_row(mask[y])
        return bytes(out)

    def encode_file(self, path, index: Optional[int] = None) -> bytes:
        return self.encode(read_frame(path, index), index)


@dataclass
class Encoder:
    frame_encoder: FrameEncoder
    sink: FrameSink
    workers: int = 1
    cancel: threading.Event = field(default_factory=threading.Event)

    def encode(self, path) -> int:
        """
        encodes every frame in the directory and hands the results to the sink in index order
        frames are encoded on a thread pool; writes stay sequential so a failure or
        cancellation always leaves frames 0..k-1 on disk and nothing after
        :param path: directory of index named raster files
        :return int: number of frames written
        """
        frame_paths = list_frames(path)
        if not frame_paths:
            raise FrameSequenceError(f"no frames found in {path}")

        logger.info("encoding %d frames with %d workers", len(frame_paths), self.workers)
        executor = ThreadPoolExecutor(max_workers=max(1, self.workers))
        try:
            futures = [
                executor.submit(self.frame_encoder.encode_file, frame_path, frame_count)
                for frame_count, frame_path in enumerate(frame_paths)
            ]
            for frame_count, future in enumerate(futures):
                if self.cancel.is_set():
                    raise PackCancelled(self.sink.count())
                packed = future.result()
                self.sink.write(frame_count, packed)
                logger.debug("wrote frame %d (%d bytes)", frame_count, len(packed))
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        return self.sink.count()
