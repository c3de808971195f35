import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from config import FilterOptions
from errors import PipelineError
from functions import list_frames

logger = logging.getLogger(__name__)

OUTPUT_PATTERN = "%d.png"


@dataclass
class ImagePipeline:
    """
    Wraps the ImageMagick call that turns a GIF into index named 1-bit frames.
    Everything about how the frames look is decided here; the encoder only packs them.
    """

    options: FilterOptions = field(default_factory=FilterOptions)
    executable: str = "magick"

    def arguments(self, source, out_dir) -> list:
        opts = self.options
        args = [self.executable, str(source), "-coalesce"]
        args += ["-resize", f"{opts.width}x{opts.height}!"]
        if opts.contrast_stretch:
            args += ["-contrast-stretch", opts.contrast_stretch]
        if opts.sharpen > 0:
            args += ["-sharpen", f"0x{opts.sharpen:g}"]
        if opts.grayscale:
            args += ["-colorspace", "Gray"]
        if opts.edge_detect:
            args += ["-edge", "1", "-normalize"]
        # dithering has to be chosen before the colour reduction it applies to
        args += ["-dither", "FloydSteinberg"] if opts.dither else ["+dither"]
        if opts.monochrome:
            args += ["-monochrome"]
        if opts.invert:
            args += ["-negate"]
        args.append(str(Path(out_dir) / OUTPUT_PATTERN))
        return args

    def run(self, source, out_dir) -> list:
        """
        runs the engine once and waits for it to finish
        :return list: paths of the produced frames in index order
        """
        if shutil.which(self.executable) is None:
            raise PipelineError(f"image engine {self.executable!r} not found on PATH")

        args = self.arguments(source, out_dir)
        logger.debug("running %s", " ".join(args))
        try:
            subprocess.run(args, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise PipelineError(
                f"{self.executable} exited with {e.returncode}: {e.stderr.strip()}"
            ) from e

        frames = list_frames(out_dir)
        if not frames:
            raise PipelineError(f"{self.executable} produced no frames from {source}")
        logger.info("image pipeline produced %d frames", len(frames))
        return frames
