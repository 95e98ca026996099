"""Resolve an extension source into a validated, staged package.

Resolution never touches the project: local sources are read in place,
git and registry sources are fetched into a private temporary directory.
The result must be released with ``cleanup()`` (or used as a context
manager) once the install attempt is over.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tarfile
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from urllib.parse import quote

import httpx

from extensions.errors import ResolveError
from extensions.manifest import MANIFEST_FILENAME, ExtensionManifest
from project.settings import Settings

logger = logging.getLogger(__name__)

STAGING_PREFIX = "aif-ext-"


class SourceKind(str, Enum):
    """Kind of extension source."""

    LOCAL = "local"
    GIT = "git"
    REGISTRY = "registry"


def is_local_path(source: str) -> bool:
    return source.startswith(("./", "/", "../")) or os.path.isabs(source)


def is_git_url(source: str) -> bool:
    return (
        source.startswith(("git+", "git://"))
        or source.endswith(".git")
        or "github.com/" in source
        or "gitlab.com/" in source
    )


def classify_source(source: str) -> SourceKind:
    """Classify a source string; local paths win over git URLs."""
    if is_local_path(source):
        return SourceKind.LOCAL
    if is_git_url(source):
        return SourceKind.GIT
    return SourceKind.REGISTRY


def split_git_ref(source: str) -> tuple[str, str | None]:
    """Strip a ``git+`` prefix and split off a ``#ref`` fragment."""
    url = source[4:] if source.startswith("git+") else source
    if "#" in url:
        url, ref = url.split("#", 1)
        return url, ref or None
    return url, None


def split_package_spec(spec: str) -> tuple[str, str]:
    """Split ``name@version`` (scoped names keep their leading ``@``)."""
    at_idx = spec.rfind("@")
    if at_idx > 0:
        return spec[:at_idx], spec[at_idx + 1 :] or "latest"
    return spec, "latest"


def read_manifest(package_root: Path) -> ExtensionManifest:
    """Load and validate the manifest at a package root.

    Raises:
        ResolveError: If extension.json is absent.
        ManifestError: If it is malformed or carries unsafe names.
    """
    manifest_path = package_root / MANIFEST_FILENAME
    if not manifest_path.is_file():
        raise ResolveError(
            f"Invalid extension: no valid {MANIFEST_FILENAME} found in {package_root}"
        )
    return ExtensionManifest.from_json(manifest_path)


@dataclass
class ResolvedExtension:
    """A validated package, ready to commit.

    Attributes:
        manifest: Validated manifest.
        source: Original source string.
        kind: Kind of source.
        root: Package root holding extension.json.
        staging_dir: Private temporary directory, None for local sources.
    """

    manifest: ExtensionManifest
    source: str
    kind: SourceKind
    root: Path
    staging_dir: Path | None = None
    _released: bool = field(default=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    def cleanup(self) -> None:
        """Delete the staging area. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        if self.staging_dir is not None:
            shutil.rmtree(self.staging_dir, ignore_errors=True)
            logger.debug("Released staging area %s", self.staging_dir)

    def __enter__(self) -> ResolvedExtension:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()


class PackageFetcher:
    """Fetch remote packages with git and the npm-compatible registry.

    Every call is bounded by ``settings.fetch_timeout``.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    def clone(self, url: str, dest: Path, ref: str | None = None) -> Path:
        """Shallow-clone a repository into dest.

        Raises:
            ResolveError: If git is missing, fails or times out.
        """
        cmd = [self.settings.git_bin, "clone", "--depth", "1"]
        if ref:
            cmd += ["--branch", ref]
        cmd += [url, str(dest)]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.settings.fetch_timeout,
            )
        except FileNotFoundError:
            raise ResolveError("Git is not installed or not in PATH")
        except subprocess.TimeoutExpired:
            raise ResolveError(
                f"git clone of {url} timed out after {self.settings.fetch_timeout:g}s"
            )
        if result.returncode != 0:
            raise ResolveError(f"git clone of {url} failed:\n{result.stderr.strip()}")
        return dest

    def fetch_package(self, name: str, version: str, dest: Path) -> Path:
        """Download a registry tarball and unpack it into dest.

        Returns:
            The package root inside dest.

        Raises:
            ResolveError: On HTTP errors, timeouts or a malformed tarball.
        """
        registry = self.settings.registry_url.rstrip("/")
        metadata_url = f"{registry}/{quote(name, safe='@')}/{quote(version, safe='')}"
        tarball_path = dest / "package.tgz"
        extract_dir = dest / "extracted"

        try:
            with httpx.Client(
                timeout=self.settings.fetch_timeout, follow_redirects=True
            ) as client:
                response = client.get(metadata_url)
                response.raise_for_status()
                data = response.json()
                dist = data.get("dist") if isinstance(data, dict) else None
                tarball_url = dist.get("tarball") if isinstance(dist, dict) else None
                if not tarball_url:
                    raise ResolveError(f"Registry entry for {name}@{version} has no tarball")

                response = client.get(tarball_url)
                response.raise_for_status()
                tarball_path.write_bytes(response.content)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ResolveError(f"Package not found in registry: {name}@{version}")
            raise ResolveError(f"Registry error for {name}: HTTP {e.response.status_code}")
        except httpx.TimeoutException:
            raise ResolveError(
                f"Registry request for {name} timed out after {self.settings.fetch_timeout:g}s"
            )
        except httpx.RequestError as e:
            raise ResolveError(f"Connection error while fetching {name}: {e}")
        except ValueError as e:
            raise ResolveError(f"Invalid registry response for {name}: {e}")

        extract_dir.mkdir()
        try:
            with tarfile.open(tarball_path, "r:gz") as tar:
                tar.extractall(extract_dir, filter="data")
        except (tarfile.TarError, OSError) as e:
            raise ResolveError(f"Cannot unpack {name}: {e}")

        if (extract_dir / "package").is_dir():
            return extract_dir / "package"
        entries = list(extract_dir.iterdir())
        if len(entries) == 1 and entries[0].is_dir():
            return entries[0]
        return extract_dir


class SourceResolver:
    """Turn source strings into ResolvedExtension values.

    Example:
        >>> resolver = SourceResolver()
        >>> with resolver.resolve("./my-extension") as resolved:
        ...     print(resolved.manifest.name)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        fetcher: PackageFetcher | None = None,
    ):
        self.settings = settings or Settings()
        self.fetcher = fetcher or PackageFetcher(self.settings)

    def resolve(self, source: str) -> ResolvedExtension:
        """Resolve a source string.

        Raises:
            ResolveError: If fetching fails or the manifest is absent.
            ManifestError: If the manifest is invalid or unsafe.
        """
        kind = classify_source(source)
        logger.info("Resolving %s source %s", kind.value, source)

        if kind == SourceKind.LOCAL:
            root = Path(source).resolve()
            if not root.is_dir():
                raise ResolveError(f"Extension path is not a directory: {root}")
            return ResolvedExtension(
                manifest=read_manifest(root), source=source, kind=kind, root=root
            )

        staging_dir = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX))
        try:
            if kind == SourceKind.GIT:
                url, ref = split_git_ref(source)
                root = self.fetcher.clone(url, staging_dir / "repo", ref=ref)
            else:
                name, version = split_package_spec(source)
                root = self.fetcher.fetch_package(name, version, staging_dir)
            manifest = read_manifest(root)
        except OSError as e:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise ResolveError(f"Cannot stage {source}: {e}") from e
        except BaseException:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise

        return ResolvedExtension(
            manifest=manifest,
            source=source,
            kind=kind,
            root=root,
            staging_dir=staging_dir,
        )
