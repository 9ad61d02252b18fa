"""streamrec — scheduled recorder for network audio streams."""

__version__ = "1.1.0"
