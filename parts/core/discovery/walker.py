# parts/core/discovery/walker.py
import queue
import threading
from typing import List

import structlog

from parts.config.settings import Part
from parts.core.discovery.pattern_matching import PatternSet, compile_pattern_set
from parts.core.discovery.traversal import ParallelTraversal, TraversalError, WalkEntry
from parts.core.output import CollectingSink, OutputSink
from parts.exceptions import OutputError

log = structlog.get_logger(__name__)

# marks the end of the match channel for the consumer.
_END_OF_WALK = object()


class ParallelWalker:
    """
    Lists the files of one part: a pool of traversal workers filters entries
    through the part's include/exclude pattern sets and sends matches over a
    single channel to one consumer thread, which writes them to the sink.

    Output order follows traversal speed and is not deterministic; buffer
    and sort (see `CollectingSink`) when a stable order is needed.
    `channel_capacity=0` makes the channel unbounded; a positive value makes
    workers block while the consumer catches up.
    """

    def __init__(self, part: Part, threads: int = 0, channel_capacity: int = 0):
        self.part = part
        self.threads = threads
        self.channel_capacity = max(0, channel_capacity)
        self.log = structlog.get_logger(f"{__name__}.{self.__class__.__name__}")

    def compile_patterns(self):
        # (include, exclude) pattern sets for this part.
        include = compile_pattern_set(self.part.include_globs, self.part.include_regexes)
        exclude = compile_pattern_set(self.part.exclude_globs, self.part.exclude_regexes)
        return include, exclude

    def walk(self, sink: OutputSink) -> List[TraversalError]:
        """
        Writes every matching file of the part to `sink` and blocks until the
        last one is written. Returns the per-entry errors met along the way;
        raises OutputError if the sink fails.
        """
        include, exclude = self.compile_patterns()
        if include.is_empty:
            self.log.warning("part_has_no_include_patterns", part=self.part.name)

        self.log.info(
            "walk_started",
            part=self.part.name,
            directory=self.part.directory,
            ignore_hidden=self.part.ignore_hidden,
            use_gitignore=self.part.use_gitignore,
        )
        matches: "queue.Queue[object]" = queue.Queue(maxsize=self.channel_capacity)
        errors: "queue.SimpleQueue[TraversalError]" = queue.SimpleQueue()
        abort = threading.Event()
        sink_failures: List[BaseException] = []

        def consume() -> None:
            while True:
                item = matches.get()
                if item is _END_OF_WALK:
                    return
                if abort.is_set():
                    # keep draining so blocked producers can finish
                    continue
                try:
                    sink.write_path(item)
                except Exception as e:
                    sink_failures.append(e)
                    abort.set()

        def visit(entry: WalkEntry) -> None:
            if not entry.is_file:
                return
            if _is_selected(entry.rel_bytes(), include, exclude):
                matches.put(entry.path)

        consumer = threading.Thread(target=consume, name="parts-walk-output", daemon=True)
        consumer.start()
        traversal = ParallelTraversal(
            self.part.directory,
            ignore_hidden=self.part.ignore_hidden,
            use_gitignore=self.part.use_gitignore,
            threads=self.threads,
        )
        try:
            traversal.run(visit, errors.put, should_stop=abort.is_set)
        finally:
            matches.put(_END_OF_WALK)
            consumer.join()

        if sink_failures:
            failure = sink_failures[0]
            self.log.error("walk_aborted_output_failed", part=self.part.name, error=str(failure))
            if isinstance(failure, OutputError):
                raise failure
            raise OutputError(f"failed to write walk output: {failure}") from failure
        sink.flush()

        collected = _drain(errors)
        for error in collected:
            self.log.warning("walk_entry_error", path=error.path, error=str(error.error))
        self.log.info("walk_finished", part=self.part.name, errors=len(collected))
        return collected


def _is_selected(rel_path: bytes, include: PatternSet, exclude: PatternSet) -> bool:
    # exclusion always wins over inclusion.
    return include.is_match(rel_path) and not exclude.is_match(rel_path)


def _drain(errors: "queue.SimpleQueue[TraversalError]") -> List[TraversalError]:
    collected: List[TraversalError] = []
    while True:
        try:
            collected.append(errors.get_nowait())
        except queue.Empty:
            return collected


def walk_part(part: Part, sink: OutputSink, threads: int = 0, channel_capacity: int = 0) -> List[TraversalError]:
    return ParallelWalker(part, threads=threads, channel_capacity=channel_capacity).walk(sink)


def list_part_files(part: Part, threads: int = 0) -> List[str]:
    # convenience for library callers: the sorted file list of a part.
    sink = CollectingSink()
    walk_part(part, sink, threads=threads)
    return sink.sorted_paths()
