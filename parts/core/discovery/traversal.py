# parts/core/discovery/traversal.py
"""
Parallel directory traversal.

A fixed pool of worker threads shares one queue of directories to scan.
Each worker scans a directory, queues its subdirectories for whichever
worker is free next, and hands every surviving entry to a visitor callback.
Hidden names and gitignore-style rules are applied here, before descending,
so callers only see what is left.
"""
import os
import queue
import stat
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, NamedTuple, Optional

import structlog

from .ignore_rules import IgnoreChain, is_hidden_name, load_directory_specs

log = structlog.get_logger(__name__)

MAX_DEFAULT_THREADS = 12


@dataclass(frozen=True)
class WalkEntry:
    # one visited filesystem entry; transient, never stored past the walk.
    path: str
    rel_path: str
    is_dir: bool
    is_file: bool

    def rel_bytes(self) -> bytes:
        return os.fsencode(self.rel_path)


@dataclass(frozen=True)
class TraversalError:
    # a recoverable failure on one entry, e.g. an unreadable directory.
    path: str
    error: OSError

    def __str__(self) -> str:
        reason = self.error.strerror or str(self.error)
        return f"{self.path}: {reason}"


Visitor = Callable[[WalkEntry], None]
ErrorHandler = Callable[[TraversalError], None]


def default_thread_count() -> int:
    return max(1, min(os.cpu_count() or 1, MAX_DEFAULT_THREADS))


def _display_root(directory: str) -> str:
    # "./" and "./src" are shown as "" and "src", like paths relative to the cwd.
    while directory.startswith("./"):
        directory = directory[2:]
    return "" if directory == "." else directory


def _display_join(parent: str, name: str) -> str:
    return os.path.join(parent, name) if parent else name


class _DirTask(NamedTuple):
    fs_path: str
    display: str
    rel: str
    ignore: IgnoreChain


class ParallelTraversal:
    """
    Walks `root` with a pool of `threads` workers (0 picks a default based on
    the CPU count). Directory symlinks are not followed.
    """

    def __init__(self, root: str, ignore_hidden: bool = True, use_gitignore: bool = True, threads: int = 0):
        self.root = root
        self.ignore_hidden = ignore_hidden
        self.use_gitignore = use_gitignore
        self.threads = threads if threads > 0 else default_thread_count()
        self._failure: Optional[BaseException] = None
        self._failure_lock = threading.Lock()

    def run(self, visit: Visitor, on_error: ErrorHandler, should_stop: Optional[Callable[[], bool]] = None) -> None:
        """
        Blocks until every reachable directory has been scanned.

        Per-entry failures go to `on_error` and the walk goes on. When
        `should_stop` returns true, queued directories are dropped unscanned.
        """
        should_stop = should_stop or (lambda: False)
        self._failure = None
        root_display = _display_root(self.root)
        try:
            root_stat = os.stat(self.root)
        except OSError as e:
            on_error(TraversalError(self.root, e))
            return

        if not stat.S_ISDIR(root_stat.st_mode):
            name = os.path.basename(os.path.normpath(self.root))
            visit(WalkEntry(root_display or self.root, name, False, stat.S_ISREG(root_stat.st_mode)))
            return

        chain = IgnoreChain.for_root(Path(self.root)) if self.use_gitignore else IgnoreChain()
        work: "queue.Queue[Optional[_DirTask]]" = queue.Queue()
        work.put(_DirTask(self.root, root_display, "", chain))

        log.debug("traversal_started", root=self.root, threads=self.threads)
        workers = [
            threading.Thread(
                target=self._worker,
                args=(work, visit, on_error, should_stop),
                name=f"parts-walk-{i}",
                daemon=True,
            )
            for i in range(self.threads)
        ]
        for worker in workers:
            worker.start()
        work.join()
        for _ in workers:
            work.put(None)
        for worker in workers:
            worker.join()
        log.debug("traversal_finished", root=self.root)

        if self._failure is not None:
            raise self._failure

    def _worker(self, work: "queue.Queue[Optional[_DirTask]]", visit: Visitor, on_error: ErrorHandler, should_stop: Callable[[], bool]) -> None:
        while True:
            task = work.get()
            try:
                if task is None:
                    return
                if self._failure is None and not should_stop():
                    self._scan(task, work, visit, on_error)
            except Exception as e:
                log.error("traversal_worker_failed", directory=task.fs_path if task else None, error=str(e), exc_info=True)
                with self._failure_lock:
                    if self._failure is None:
                        self._failure = e
            finally:
                work.task_done()

    def _scan(self, task: _DirTask, work: "queue.Queue[Optional[_DirTask]]", visit: Visitor, on_error: ErrorHandler) -> None:
        chain = task.ignore
        if self.use_gitignore:
            chain = chain.extend(task.rel, load_directory_specs(Path(task.fs_path)))

        try:
            with os.scandir(task.fs_path) as it:
                entries: List[os.DirEntry] = list(it)
        except OSError as e:
            on_error(TraversalError(task.display or task.fs_path, e))
            return

        for entry in entries:
            name = entry.name
            if self.ignore_hidden and is_hidden_name(name):
                continue
            rel = f"{task.rel}/{name}" if task.rel else name
            display = _display_join(task.display, name)
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file()
            except OSError as e:
                on_error(TraversalError(display, e))
                continue
            if chain and chain.is_ignored(rel, is_dir):
                continue
            if is_dir:
                work.put(_DirTask(entry.path, display, rel, chain))
            visit(WalkEntry(display, rel, is_dir, is_file))
