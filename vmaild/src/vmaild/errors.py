class VmailError(Exception):
    """Base class for errors raised by vmaild."""


class DecodeError(VmailError):
    """A stored record or the database file itself is malformed."""


class HashError(VmailError):
    """A password could not be hashed with the stored scheme."""


class DirectoryError(VmailError):
    """The directory service could not be queried."""
