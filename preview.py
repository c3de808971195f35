import logging
from math import ceil
from pathlib import Path

from matplotlib import pyplot as plt

from errors import IOFailure, PackError
from functions import decode, mask_to_image
from metadata import DESCRIPTOR_NAME
from sink import FRAME_NAME

logger = logging.getLogger(__name__)


def passive_frames(pack_dir) -> int:
    path = Path(pack_dir) / DESCRIPTOR_NAME
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise IOFailure(path, e) from e
    for line in lines:
        if line.startswith("Passive frames:"):
            try:
                return int(line.split(":", 1)[1])
            except ValueError:
                break
    raise PackError(f"{path} has no valid Passive frames entry")


def load_pack_frames(pack_dir, width: int, height: int, frame_count: int = None) -> list:
    """
    decodes the frames of a pack; without frame_count the count is read from meta.txt
    so files outside the pack are never shown
    """
    pack_dir = Path(pack_dir)
    if frame_count is None:
        frame_count = passive_frames(pack_dir)
    frames = []
    for index in range(frame_count):
        path = pack_dir / FRAME_NAME.format(index)
        try:
            packed = path.read_bytes()
        except OSError as e:
            raise IOFailure(path, e, index) from e
        frames.append(decode(packed, width, height))
    return frames


def save_preview(
    pack_dir, out_path, width: int, height: int, frame_count: int = None, columns: int = 8
) -> Path:
    """
    draws every frame of a finished pack into one contact sheet image
    """
    frames = load_pack_frames(pack_dir, width, height, frame_count)
    if not frames:
        raise IOFailure(pack_dir, FileNotFoundError("pack has no frames"))

    columns = min(columns, len(frames))
    rows = ceil(len(frames) / columns)
    fig, axes = plt.subplots(rows, columns, squeeze=False, figsize=(2 * columns, rows))
    for i, ax in enumerate(axes.flat):
        ax.axis("off")
        if i < len(frames):
            ax.imshow(mask_to_image(frames[i]), cmap="gray", vmin=0, vmax=255)
            ax.set_title(str(i), fontsize=6)

    out_path = Path(out_path)
    try:
        fig.savefig(out_path, dpi=100)
    except OSError as e:
        raise IOFailure(out_path, e) from e
    finally:
        plt.close(fig)
    logger.info("preview written to %s", out_path)
    return out_path
