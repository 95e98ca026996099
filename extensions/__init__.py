"""Extension lifecycle for AI Factory.

Extensions are packages with an extension.json manifest. They can ship
custom skills, replace base skills, inject text into installed skills and
register companion MCP servers.

Installed extensions are stored in .ai-factory/extensions/ inside the project.
"""

from extensions.errors import (
    ConflictError,
    ExtensionError,
    InstallError,
    ManifestError,
    ResolveError,
    UnsafeNameError,
)
from extensions.installer import ExtensionStore, check_replacement_conflicts
from extensions.lifecycle import (
    ExtensionListing,
    ExtensionManager,
    InstallReport,
    RemovalReport,
)
from extensions.manifest import ExtensionManifest, InjectionPosition
from extensions.reconciler import UpdateReconciler, UpdateReport
from extensions.replacements import ReplacementOutcome, ReplacementStatus
from extensions.resolver import ResolvedExtension, SourceKind, SourceResolver, classify_source

__all__ = [
    "ConflictError",
    "ExtensionError",
    "ExtensionListing",
    "ExtensionManager",
    "ExtensionManifest",
    "ExtensionStore",
    "InjectionPosition",
    "InstallError",
    "InstallReport",
    "ManifestError",
    "RemovalReport",
    "ReplacementOutcome",
    "ReplacementStatus",
    "ResolveError",
    "ResolvedExtension",
    "SourceKind",
    "SourceResolver",
    "UnsafeNameError",
    "UpdateReconciler",
    "UpdateReport",
    "check_replacement_conflicts",
    "classify_source",
]
