import os
from typing import BinaryIO, List, Protocol, runtime_checkable

import structlog
from parts.exceptions import OutputError

log = structlog.get_logger(__name__)


def path_to_bytes(path: str) -> bytes:
    # platform-native path bytes; lossless text fallback where paths are not bytes.
    if os.name == "posix":
        return os.fsencode(path)
    return path.encode("utf-8", errors="surrogatepass")


@runtime_checkable
class OutputSink(Protocol):
    """Receives matched paths from the single consumer of a walk."""

    def write_path(self, path: str) -> None:
        ...

    def flush(self) -> None:
        ...


class StreamSink:
    # writes one path per line to a binary stream, e.g. stdout's buffer.
    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def write_path(self, path: str) -> None:
        try:
            self.stream.write(path_to_bytes(path) + b"\n")
        except (OSError, ValueError) as e:
            raise OutputError(f"failed to write path '{path}': {e}") from e

    def flush(self) -> None:
        try:
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise OutputError(f"failed to flush output stream: {e}") from e


class CollectingSink:
    # buffers every path in memory, for callers that need the full result set (sorting).
    def __init__(self):
        self.paths: List[str] = []

    def write_path(self, path: str) -> None:
        self.paths.append(path)

    def flush(self) -> None:
        pass

    def sorted_paths(self) -> List[str]:
        return sorted(self.paths, key=path_to_bytes)

    def drain_to(self, sink: OutputSink, sort: bool = True) -> None:
        paths = self.sorted_paths() if sort else list(self.paths)
        log.debug("draining_collected_paths", count=len(paths), sorted=sort)
        for path in paths:
            sink.write_path(path)
        sink.flush()
        self.paths.clear()
