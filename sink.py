import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Protocol

from errors import FrameSequenceError, IOFailure

FRAME_NAME = "frame_{}.bm"


class FrameSink(Protocol):
    def write(self, index: int, packed: bytes) -> None:
        pass

    def count(self) -> int:
        pass


@dataclass
class DirectorySink:
    root: Path
    name_format: str = FRAME_NAME
    written: List[Path] = field(default_factory=list)

    def __post_init__(self):
        self.root = Path(self.root)

    def path(self, index: int) -> Path:
        return self.root / self.name_format.format(index)

    def write(self, index: int, packed: bytes) -> None:
        if index != len(self.written):
            raise FrameSequenceError(
                f"frame {index} written out of order, expected {len(self.written)}"
            )
        target = self.path(index)
        tmp = target.with_name(target.name + ".tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(packed)
            os.replace(tmp, target)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise IOFailure(target, e, index) from e
        self.written.append(target)

    def prune(self) -> list:
        """removes frame files left over from an earlier, longer pack in the same root"""
        prefix, _, suffix = self.name_format.partition("{}")
        stale = []
        for path in self.root.glob(prefix + "*" + suffix):
            number = path.name[len(prefix) : len(path.name) - len(suffix)]
            if number.isdigit() and int(number) >= len(self.written):
                stale.append(path)
        for path in stale:
            try:
                path.unlink()
            except OSError as e:
                raise IOFailure(path, e) from e
        return stale

    def count(self) -> int:
        return len(self.written)


@dataclass
class MemorySink:
    frames: List[bytes] = field(default_factory=list)

    def write(self, index: int, packed: bytes) -> None:
        if index != len(self.frames):
            raise FrameSequenceError(
                f"frame {index} written out of order, expected {len(self.frames)}"
            )
        self.frames.append(packed)

    def count(self) -> int:
        return len(self.frames)
