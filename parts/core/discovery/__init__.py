# parts/core/discovery/__init__.py
"""
File discovery for parts.

This package compiles a part's include/exclude rules and walks its
directory in parallel, honoring hidden-file and .gitignore rules.
"""
from .pattern_matching import PatternSet, compile_pattern_set, translate_glob
from .traversal import ParallelTraversal, TraversalError, WalkEntry
from .walker import ParallelWalker, list_part_files, walk_part

__all__ = [
    "ParallelTraversal",
    "ParallelWalker",
    "PatternSet",
    "TraversalError",
    "WalkEntry",
    "compile_pattern_set",
    "list_part_files",
    "translate_glob",
    "walk_part",
]
