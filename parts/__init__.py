"""parts: divide a project into named, possibly overlapping, sets of files."""

__version__ = "0.1.0"
