import logging
import os
from math import ceil

import cv2
import numpy as np
from bitarray import bitarray

from errors import FrameSequenceError, InvalidFrameFormat, IOFailure

logger = logging.getLogger(__name__)

RAW_MARKER = 0x00
BITS_PER_BYTE = 8
IMAGE_EXTENSIONS = {".png", ".bmp", ".pbm", ".pgm", ".tif", ".tiff"}


def row_stride(width: int) -> int:
    return ceil(width / BITS_PER_BYTE)


def packed_size(width: int, height: int) -> int:
    return 1 + height * row_stride(width)


def read_frame(path, index=None) -> np.ndarray:
    frame = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if frame is None:
        # cv2 returns None instead of raising for missing or unreadable files
        raise IOFailure(path, OSError(f"cannot decode {path}"), index)
    return frame


def foreground_mask(frame: np.ndarray, index=None) -> np.ndarray:
    """
    returns a boolean array that is True where the pixel is pure black
    the frame must already be reduced to at most two colours, nothing is thresholded here
    :param numpy.ndarray frame: (H, W) grayscale or (H, W, C) colour raster
    :return numpy.ndarray: (H, W) boolean foreground mask
    """
    if frame.ndim == 2:
        pixels = frame
    elif frame.ndim == 3 and frame.shape[2] in (3, 4):
        pixels = frame[:, :, :3]
    else:
        raise InvalidFrameFormat(f"unsupported raster shape {frame.shape}", index)

    if pixels.ndim == 2:
        colours = np.unique(pixels)
        black = pixels == 0
    else:
        colours = np.unique(pixels.reshape(-1, pixels.shape[2]), axis=0)
        black = np.all(pixels == 0, axis=2)

    if len(colours) > 2:
        raise InvalidFrameFormat(
            f"expected a two-colour frame, found {len(colours)} colours", index
        )
    return black


def pack_row(mask_row: np.ndarray) -> bytes:
    # little endian bitarray puts the first pixel of every byte in bit 0
    bits = bitarray(endian="little")
    bits.pack(mask_row.astype(np.bool_).tobytes())
    bits.fill()
    return bits.tobytes()


def decode(packed: bytes, width: int, height: int) -> np.ndarray:
    """
    unpacks a packed frame back into a boolean foreground mask
    :param bytes packed: marker byte followed by the packed rows
    :param int width: frame width in pixels
    :param int height: frame height in pixels
    :return numpy.ndarray: (height, width) boolean array, True for foreground
    """
    expected = packed_size(width, height)
    if len(packed) != expected:
        raise InvalidFrameFormat(
            f"packed frame is {len(packed)} bytes, expected {expected}"
        )
    if packed[0] != RAW_MARKER:
        raise InvalidFrameFormat(f"unsupported format marker {packed[0]:#04x}")

    stride = row_stride(width)
    mask = np.zeros((height, width), dtype=np.bool_)
    for y in range(height):
        start = 1 + y * stride
        bits = bitarray(endian="little")
        bits.frombytes(bytes(packed[start : start + stride]))
        mask[y] = np.frombuffer(bits[:width].unpack(), dtype=np.bool_)
    return mask


def mask_to_image(mask: np.ndarray) -> np.ndarray:
    """foreground becomes black (0), background white (255)"""
    return np.where(mask, 0, 255).astype(np.uint8)


def list_frames(path) -> list:
    """
    collects the raster files written by the image pipeline
    files must be named by their zero based index (0.png, 1.png, ...) with no gaps
    :param path: directory holding the frames
    :return list: frame paths ordered by index
    """
    try:
        entries = os.listdir(path)
    except OSError as e:
        raise IOFailure(path, e) from e

    numbered = []
    for frame_filename in entries:
        stem, ext = os.path.splitext(frame_filename)
        if ext.lower() not in IMAGE_EXTENSIONS:
            continue
        try:
            numbered.append((int(stem), os.path.join(path, frame_filename)))
        except ValueError:
            raise FrameSequenceError(
                f"{frame_filename} is not named by its frame index"
            ) from None

    numbered.sort()
    for frame_count, (index, frame_path) in enumerate(numbered):
        if index != frame_count:
            raise FrameSequenceError(
                f"missing frame {frame_count} (found {os.path.basename(frame_path)})"
            )
    logger.debug("found %d frames in %s", len(numbered), path)
    return [frame_path for _, frame_path in numbered]
