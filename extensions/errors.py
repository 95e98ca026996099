"""Exceptions raised by the extension lifecycle.

Fatal errors (validation, resolution, conflicts) derive from ExtensionError
and abort a command before project state is mutated.
"""


class ExtensionError(Exception):
    """Base class for extension lifecycle errors."""

    pass


class ManifestError(ExtensionError):
    """Raised when manifest parsing or validation fails."""

    pass


class UnsafeNameError(ManifestError):
    """Raised when a name or path could escape its target directory."""

    pass


class ResolveError(ExtensionError):
    """Raised when an extension source cannot be fetched or validated."""

    pass


class InstallError(ExtensionError):
    """Raised when committing or removing an extension fails."""

    pass


class ConflictError(InstallError):
    """Raised when a base skill is already replaced by another extension."""

    pass
