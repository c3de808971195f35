from typing import Optional


class PackError(Exception):
    """Base class for everything that can go wrong while building a pack."""


class InvalidFrameFormat(PackError):
    def __init__(self, reason: str, index: Optional[int] = None):
        self.reason = reason
        self.index = index
        if index is None:
            super().__init__(reason)
        else:
            super().__init__(f"frame {index}: {reason}")


class FrameSequenceError(PackError):
    pass


class IOFailure(PackError):
    def __init__(self, path, cause: OSError, index: Optional[int] = None):
        self.path = path
        self.cause = cause
        self.index = index
        what = "descriptor" if index is None else f"frame {index}"
        super().__init__(f"cannot access {what} at {path}: {cause}")


class PipelineError(PackError):
    pass


class PackCancelled(PackError):
    def __init__(self, written: int):
        self.written = written
        super().__init__(f"cancelled after {written} frames")


class UnsupportedLocale(PackError, UserWarning):
    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"unsupported bubble locale {tag!r}, using default anchor")
