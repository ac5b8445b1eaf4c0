"""Binary protocol packets, a server launcher, a timed runner and parsing helpers for testing memcached servers."""

__version__ = "0.1.0"

__all__ = ["__version__"]