"""
Ports — Protocol-based interfaces for the collaborators of the scanner.

These define WHAT the scanner and the run pipeline need without specifying
HOW it is done:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters satisfy the contract
simply by implementing the methods; tests pass plain fakes.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from railway.result import Result

type IPNetwork = ipaddress.IPv4Interface | ipaddress.IPv6Interface


@runtime_checkable
class Certificate(Protocol):
    """
    Port: a decoded Nebula certificate, version independent.

    Networks are interfaces (address plus prefix length) because Nebula
    stores the host address, not the network address, in its prefixes.
    """

    @property
    def name(self) -> str: ...

    @property
    def version(self) -> int: ...

    @property
    def groups(self) -> list[str]: ...

    @property
    def not_after(self) -> datetime: ...

    @property
    def curve(self) -> str: ...

    @property
    def networks(self) -> list[IPNetwork]: ...

    @property
    def unsafe_networks(self) -> list[IPNetwork]: ...

    def fingerprint(self) -> Result[str]:
        """Hex SHA-256 digest identifying the certificate. May fail."""
        ...

    def to_json(self) -> Result[str]:
        """Full JSON serialization (embeds the fingerprint, so it may fail too)."""
        ...


@runtime_checkable
class CertificateDecoder(Protocol):
    """
    Port: decode one PEM-armored certificate block.

    The input is the block exactly as buffered by the scanner: BEGIN line,
    base64 body and END line with the block's padding removed.
    """

    def decode(self, pem: bytes) -> Result[Certificate]: ...


@runtime_checkable
class FileWalker(Protocol):
    """
    Port: enumerate the regular files below a path.

    Yields one Result per eligible file; a Failure aborts the walk.
    Symlinks and oversized files are skipped by the walker, not reported.
    """

    def walk(self, root: Path) -> Iterable[Result[Path]]: ...


@runtime_checkable
class DiffRenderer(Protocol):
    """Port: render the difference between original and rewritten bytes."""

    def render(self, path: Path, original: bytes, rewritten: bytes) -> bytes: ...


@runtime_checkable
class FileWriter(Protocol):
    """Port: persist rewritten bytes over the original file."""

    def write(self, path: Path, data: bytes) -> Result[Path]: ...
