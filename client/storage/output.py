from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import BinaryIO, Optional, Union

from shared.protocol.errors import OutputError

logger = logging.getLogger(__name__)

STDOUT_TARGET = "-"


class OutputSink:
    """Destination for the raw response payload."""

    name = "output"

    def write(self, payload: bytes) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "OutputSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FileSink(OutputSink):
    """Creates (or truncates) ``path`` and writes the payload into it."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.name = str(self.path)
        try:
            self._fp: Optional[BinaryIO] = self.path.open("wb")
        except OSError as exc:
            raise OutputError(f"Couldn't create the file {self.path}: {exc}") from exc

    def write(self, payload: bytes) -> None:
        if self._fp is None:
            raise OutputError(f"{self.path} is already closed")
        try:
            self._fp.write(payload)
            self._fp.flush()
        except OSError as exc:
            raise OutputError(f"Couldn't write into the file {self.path}: {exc}") from exc
        logger.info("Wrote %d bytes to %s", len(payload), self.path)

    def close(self) -> None:
        if self._fp is not None:
            self._fp.close()
            self._fp = None


class StdoutSink(OutputSink):
    name = "<stdout>"

    def __init__(self, stream: Optional[BinaryIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout.buffer

    def write(self, payload: bytes) -> None:
        try:
            self.stream.write(payload)
            self.stream.flush()
        except OSError as exc:
            raise OutputError(f"Couldn't write to standard output: {exc}") from exc


def open_sink(target: Union[str, Path, None]) -> OutputSink:
    if target is None or str(target) == STDOUT_TARGET:
        return StdoutSink()
    return FileSink(target)


__all__ = ["OutputSink", "FileSink", "StdoutSink", "STDOUT_TARGET", "open_sink"]
