"""Keep a vmailmgr password database in sync with a directory service."""

__version__ = "0.1.0"
