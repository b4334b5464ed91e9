"""promptcache: local prompt/response cache with pluggable storage and TF-IDF search."""

from promptcache.version import __version__

__all__ = ["__version__"]
