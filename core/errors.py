"""
Error taxonomy.

Nothing raised here is fatal to the process: configuration errors reject a
single operation, persistence errors are reported as notices and leave the
in-memory state untouched.
"""


class ConfigurationError(ValueError):
    """Unknown progression key, unknown instrument, or no audio output."""


class PersistenceError(IOError):
    """Profile storage read/write failure or a malformed import."""
