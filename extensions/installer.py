"""Persistent extension storage for a project.

Installed extensions live in ``.ai-factory/extensions/<name>/``. This module
commits resolved packages there, removes them again, and guards the
one-owner-per-replaced-skill rule before anything is written.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from extensions.errors import ConflictError, InstallError, ManifestError
from extensions.manifest import MANIFEST_FILENAME, ExtensionManifest, validate_extension_name
from extensions.resolver import ResolvedExtension
from project.config import STATE_DIRNAME, ExtensionRecord

logger = logging.getLogger(__name__)

EXTENSIONS_DIRNAME = "extensions"

# Fetch-only metadata that never belongs in project storage
EXCLUDED_FROM_COMMIT = (".git",)


def check_replacement_conflicts(
    manifest: ExtensionManifest, records: list[ExtensionRecord]
) -> None:
    """Refuse an install whose replacements are owned by another extension.

    A record with the manifest's own name is a re-install and is skipped.

    Raises:
        ConflictError: On the first base skill already replaced elsewhere.
    """
    for base_skill in manifest.replaces.values():
        for other in records:
            if other.name == manifest.name:
                continue
            if base_skill in other.replaced_skills:
                raise ConflictError(
                    f'Conflict: skill "{base_skill}" is already replaced by '
                    f'extension "{other.name}". Remove it first.'
                )


class ExtensionStore:
    """Project-local storage of installed extensions.

    Example:
        >>> store = ExtensionStore(Path("/my/project"))
        >>> with resolver.resolve("./my-extension") as resolved:
        ...     store.commit(resolved)
        >>> store.load_manifest("my-extension")
    """

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)
        self.root = self.project_dir / STATE_DIRNAME / EXTENSIONS_DIRNAME

    def extension_dir(self, name: str) -> Path:
        """Storage directory of an extension.

        Raises:
            UnsafeNameError: If the name fails validation.
            InstallError: If the path escapes the extensions root.
        """
        validate_extension_name(name)
        target = self.root / name
        root = self.root.resolve()
        resolved = target.resolve()
        if resolved == root or root not in resolved.parents:
            raise InstallError(f'Extension path escapes extensions directory: "{name}"')
        return target

    def load_manifest(self, name: str) -> ExtensionManifest | None:
        """Load an installed extension's manifest.

        Returns:
            The manifest, or None if it is missing or invalid.
        """
        try:
            manifest_path = self.extension_dir(name) / MANIFEST_FILENAME
        except (ManifestError, InstallError) as e:
            logger.warning("Skipping extension %r: %s", name, e)
            return None
        if not manifest_path.exists():
            return None
        try:
            return ExtensionManifest.from_json(manifest_path)
        except ManifestError as e:
            logger.warning("Cannot load manifest of %s: %s", name, e)
            return None

    def commit(self, resolved: ResolvedExtension) -> Path:
        """Copy a resolved package into storage, replacing prior contents.

        Returns:
            The extension's storage directory.
        """
        name = resolved.manifest.name
        target = self.extension_dir(name)

        if target.resolve() == resolved.root.resolve():
            logger.info("Extension %s is already in place at %s", name, target)
            return target

        try:
            if target.exists():
                shutil.rmtree(target)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(
                resolved.root,
                target,
                ignore=shutil.ignore_patterns(*EXCLUDED_FROM_COMMIT),
            )
        except OSError as e:
            raise InstallError(f"Cannot install extension files for {name}: {e}")

        logger.info("Committed %s v%s to %s", name, resolved.manifest.version, target)
        return target

    def remove(self, name: str) -> None:
        """Delete an extension's storage directory; missing is not an error."""
        target = self.extension_dir(name)
        if target.exists():
            try:
                shutil.rmtree(target)
            except OSError as e:
                raise InstallError(f"Cannot remove extension files for {name}: {e}")

        # Scoped names (@scope/pkg) leave an empty scope directory behind
        parent = target.parent
        root = self.root.resolve()
        while parent.resolve() != root and root in parent.resolve().parents:
            if not parent.is_dir():
                parent = parent.parent
                continue
            if any(parent.iterdir()):
                break
            try:
                parent.rmdir()
            except OSError as e:
                logger.warning("Could not remove empty directory %s: %s", parent, e)
                break
            parent = parent.parent
