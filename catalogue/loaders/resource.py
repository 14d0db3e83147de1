"""Named dataset lookup over an ordered list of byte sources.

The loader returns the bytes from the first source that holds the resource.
Sources answer "not here" with ``None``; a real I/O failure on a file that
does exist propagates unchanged.

Production order::

    settings.dataset_dir (when configured) -> bundled package data -> cwd

Tests inject an ``InMemorySource`` instead.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from catalogue.core.config import settings
from catalogue.core.errors import ResourceNotFound

logger = logging.getLogger(__name__)

DATA_PACKAGE = "catalogue.data"


def _is_plain_name(name: str) -> bool:
    return bool(name) and "/" not in name and "\\" not in name and name not in (".", "..")


class ByteSource(Protocol):
    def read(self, name: str) -> bytes | None:
        """Return the bytes for *name*, or ``None`` if this source lacks it."""


class DirectorySource:
    """Reads ``<root>/<name><suffix>`` from the filesystem."""

    def __init__(self, root: str | Path, suffix: str = ".json") -> None:
        self.root = Path(root).expanduser()
        self.suffix = suffix

    def read(self, name: str) -> bytes | None:
        if not _is_plain_name(name):
            return None
        path = self.root / f"{name}{self.suffix}"
        if not path.is_file():
            return None
        return path.read_bytes()

    def __repr__(self) -> str:
        return f"DirectorySource({str(self.root)!r})"


class PackageSource:
    """Reads resources bundled inside an importable package."""

    def __init__(self, package: str = DATA_PACKAGE, suffix: str = ".json") -> None:
        self.package = package
        self.suffix = suffix

    def read(self, name: str) -> bytes | None:
        if not _is_plain_name(name):
            return None
        resource = resources.files(self.package).joinpath(f"{name}{self.suffix}")
        if not resource.is_file():
            return None
        return resource.read_bytes()

    def __repr__(self) -> str:
        return f"PackageSource({self.package!r})"


class InMemorySource:
    """Fixed name-to-bytes mapping; the deterministic seam for tests."""

    def __init__(self, payloads: Mapping[str, bytes]) -> None:
        self._payloads = dict(payloads)

    def read(self, name: str) -> bytes | None:
        return self._payloads.get(name)

    def __repr__(self) -> str:
        return f"InMemorySource({sorted(self._payloads)!r})"


def default_sources() -> list[ByteSource]:
    sources: list[ByteSource] = []
    if settings.dataset_dir:
        sources.append(DirectorySource(settings.dataset_dir))
    sources.append(PackageSource())
    sources.append(DirectorySource(Path.cwd()))
    return sources


class ResourceLoader:
    """Returns the bytes of a named resource from the first source holding it."""

    def __init__(self, sources: Sequence[ByteSource] | None = None) -> None:
        self._sources: tuple[ByteSource, ...] = tuple(
            default_sources() if sources is None else sources
        )

    @property
    def sources(self) -> tuple[ByteSource, ...]:
        return self._sources

    def load(self, name: str) -> bytes:
        """Return the bytes for *name*.

        Raises:
            ResourceNotFound: no candidate source holds *name*.
        """
        for source in self._sources:
            data = source.read(name)
            if data is not None:
                logger.debug("Loaded %r (%d bytes) from %r", name, len(data), source)
                return data
        raise ResourceNotFound(name)
