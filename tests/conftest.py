"""
Shared test fixtures and helpers for the nebula-cert-comment test suite.

Certificates are built on the fly with the same protobuf (v1) and
pyasn1 (v2) schemas the decoder uses, then PEM-armored. Certificates encoded
independently of those schemas live in tests/unit/test_known_certificates.py.
"""

from __future__ import annotations

import base64
import hashlib
import ipaddress
import textwrap
from collections.abc import Iterator
from datetime import UTC, datetime

import pytest
import structlog
from pyasn1.codec.der import encoder as der_encoder

from nebula_cert_comment.adapters.nebula_cert import (
    NebulaCertificateV2Schema,
    RawNebulaCertificate,
)

NOT_AFTER = datetime(2026, 6, 11, 12, 30, tzinfo=UTC)
NOT_BEFORE = datetime(2025, 6, 11, 12, 30, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo any structlog configuration a test (or main()) applied."""
    yield
    structlog.reset_defaults()


def armor(banner: str, body: bytes, width: int = 64) -> bytes:
    """PEM-armor body, wrapping the base64 text at `width` columns."""
    lines = textwrap.wrap(base64.b64encode(body).decode("ascii"), width)
    return "\n".join([f"-----BEGIN {banner}-----", *lines, f"-----END {banner}-----", ""]).encode()


def _v1_pairs(networks: list[str]) -> list[int]:
    pairs: list[int] = []
    for cidr in networks:
        iface = ipaddress.IPv4Interface(cidr)
        pairs += [int(iface.ip), int(iface.netmask)]
    return pairs


def build_v1_raw(
    name: str = "My CA",
    groups: list[str] | None = None,
    networks: list[str] | None = None,
    unsafe_networks: list[str] | None = None,
    not_after: datetime = NOT_AFTER,
    is_ca: bool = True,
    curve: int = 0,
):
    """Build a RawNebulaCertificate protobuf message."""
    raw = RawNebulaCertificate()
    details = raw.Details
    details.Name = name
    details.Groups.extend(groups if groups is not None else ["dev"])
    details.Ips.extend(_v1_pairs(networks or []))
    details.Subnets.extend(_v1_pairs(unsafe_networks or []))
    details.NotBefore = int(NOT_BEFORE.timestamp())
    details.NotAfter = int(not_after.timestamp())
    details.PublicKey = bytes(range(32))
    details.IsCA = is_ca
    details.curve = curve
    raw.Signature = b"\x01" * 64
    return raw


def v1_pem(**kwargs) -> bytes:
    """PEM-armored v1 certificate (`-----BEGIN NEBULA CERTIFICATE-----`)."""
    return armor("NEBULA CERTIFICATE", build_v1_raw(**kwargs).SerializeToString())


def v1_fingerprint(**kwargs) -> str:
    """Expected fingerprint of the certificate v1_pem(**kwargs) produces."""
    return hashlib.sha256(build_v1_raw(**kwargs).SerializeToString(deterministic=True)).hexdigest()


def _v2_network(cidr: str) -> bytes:
    iface = ipaddress.ip_interface(cidr)
    return iface.ip.packed + bytes([iface.network.prefixlen])


def build_v2_der(
    name: str = "host-a",
    groups: list[str] | None = None,
    networks: list[str] | None = None,
    unsafe_networks: list[str] | None = None,
    not_after: datetime = NOT_AFTER,
    curve: str = "P256",
) -> bytes:
    """Build the DER body of a v2 certificate."""
    cert = NebulaCertificateV2Schema()
    details = cert["details"]
    details["name"] = name
    if networks:
        details["networks"].extend([_v2_network(n) for n in networks])
    if unsafe_networks:
        details["unsafeNetworks"].extend([_v2_network(n) for n in unsafe_networks])
    if groups:
        details["groups"].extend(groups)
    details["notBefore"] = int(NOT_BEFORE.timestamp())
    details["notAfter"] = int(not_after.timestamp())
    cert["curve"] = curve
    cert["publicKey"] = b"\x04" + bytes(64)
    cert["signature"] = b"\x02" * 70
    return der_encoder.encode(cert)


def v2_pem(**kwargs) -> bytes:
    """PEM-armored v2 certificate (`-----BEGIN NEBULA CERTIFICATE V2-----`)."""
    return armor("NEBULA CERTIFICATE V2", build_v2_der(**kwargs))


def indent(block: bytes, padding: bytes) -> bytes:
    """Prefix every line of a block with padding."""
    return b"".join(padding + line for line in block.splitlines(keepends=True))


@pytest.fixture()
def ca_pem() -> bytes:
    return v1_pem()


@pytest.fixture()
def ca_fingerprint() -> str:
    return v1_fingerprint()
