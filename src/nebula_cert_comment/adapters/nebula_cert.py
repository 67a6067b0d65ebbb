"""
Nebula certificate decoder adapter — PEM unwrapping + v1/v2 body decoding.

Adapter layer — implements the CertificateDecoder port using:
  - pyasn1: the DER schema of v2 certificates
  - protobuf: the wire schema of v1 certificates (descriptor built in code)
  - cryptography (PyCA): SHA-256 fingerprints

Pipeline:
  PEM block
    → unarmor() → (marker index, body bytes)
    → "NEBULA CERTIFICATE"    → protobuf RawNebulaCertificate → NebulaCertificateV1
    → "NEBULA CERTIFICATE V2" → pyasn1 NebulaCertificateV2Schema → NebulaCertificateV2

v1 wire format:

    message RawNebulaCertificate {
        RawNebulaCertificateDetails Details = 1;
        bytes Signature = 2;
    }
    message RawNebulaCertificateDetails {
        string Name = 1;
        repeated uint32 Ips = 2;      // (ip, mask) pairs, big endian
        repeated uint32 Subnets = 3;  // (ip, mask) pairs, big endian
        repeated string Groups = 4;
        int64 NotBefore = 5;
        int64 NotAfter = 6;
        bytes PublicKey = 7;
        bool IsCA = 8;
        bytes Issuer = 9;
        Curve curve = 100;
    }

v2 DER format (implicit context tags):

    Certificate ::= SEQUENCE {
        details   [0] Details,
        curve     [1] ENUMERATED DEFAULT curve25519,
        publicKey [2] OCTET STRING OPTIONAL,
        signature [3] OCTET STRING }
    Details ::= SEQUENCE {
        name           [0] UTF8String,
        networks       [1] SEQUENCE OF OCTET STRING OPTIONAL,
        unsafeNetworks [2] SEQUENCE OF OCTET STRING OPTIONAL,
        groups         [3] SEQUENCE OF UTF8String OPTIONAL,
        isCA           [4] BOOLEAN DEFAULT FALSE,
        notBefore      [5] INTEGER,
        notAfter       [6] INTEGER,
        issuer         [7] OCTET STRING OPTIONAL }

v2 network octet strings are the address bytes (4 or 16) followed by one
prefix-length byte.
"""

from __future__ import annotations

import base64
import ipaddress
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from cryptography.hazmat.primitives import hashes
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message
from pyasn1.codec.der import decoder as der_decoder
from pyasn1.codec.der import encoder as der_encoder
from pyasn1.type import char, namedtype, namedval, tag, univ
from railway import ErrorCode
from railway.result import Result

from nebula_cert_comment.domain.ports import Certificate, IPNetwork

log = structlog.get_logger()

BANNER_V1 = "NEBULA CERTIFICATE"
BANNER_V2 = "NEBULA CERTIFICATE V2"

CURVE25519 = "CURVE25519"
P256 = "P256"

_CURVE_NAMES = {0: CURVE25519, 1: P256}


def _sha256_hex(data: bytes) -> str:
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize().hex()


def _rfc3339(ts: datetime) -> str:
    return ts.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _from_unix(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, UTC)


# ─────────────────────── Common Certificate Shape ───────────────────────


@dataclass(frozen=True, slots=True)
class _NebulaCertificateBase:
    """Fields shared by both certificate versions (satisfies the Certificate port)."""

    name: str
    groups: list[str] = field(default_factory=list)
    networks: list[IPNetwork] = field(default_factory=list)
    unsafe_networks: list[IPNetwork] = field(default_factory=list)
    not_before: datetime = field(default_factory=lambda: _from_unix(0))
    not_after: datetime = field(default_factory=lambda: _from_unix(0))
    is_ca: bool = False
    issuer: bytes = b""
    public_key: bytes = field(default=b"", repr=False)
    curve: str = CURVE25519
    signature: bytes = field(default=b"", repr=False)

    def _details_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "networks": [n.with_prefixlen for n in self.networks],
            "unsafeNetworks": [n.with_prefixlen for n in self.unsafe_networks],
            "groups": list(self.groups),
            "notBefore": _rfc3339(self.not_before),
            "notAfter": _rfc3339(self.not_after),
            "isCa": self.is_ca,
            "issuer": self.issuer.hex(),
        }


# ─────────────────────── v1: protobuf ───────────────────────

_FIELD = descriptor_pb2.FieldDescriptorProto
_V1_PACKAGE = "nebula_cert_comment.cert"


def _build_v1_message() -> type[Message]:
    """Build the v1 message class from a descriptor assembled in code."""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="nebula_cert_comment/cert_v1.proto",
        package=_V1_PACKAGE,
        syntax="proto3",
    )

    details = file_proto.message_type.add(name="RawNebulaCertificateDetails")
    for name, number, kind, label in (
        ("Name", 1, _FIELD.TYPE_STRING, _FIELD.LABEL_OPTIONAL),
        ("Ips", 2, _FIELD.TYPE_UINT32, _FIELD.LABEL_REPEATED),
        ("Subnets", 3, _FIELD.TYPE_UINT32, _FIELD.LABEL_REPEATED),
        ("Groups", 4, _FIELD.TYPE_STRING, _FIELD.LABEL_REPEATED),
        ("NotBefore", 5, _FIELD.TYPE_INT64, _FIELD.LABEL_OPTIONAL),
        ("NotAfter", 6, _FIELD.TYPE_INT64, _FIELD.LABEL_OPTIONAL),
        ("PublicKey", 7, _FIELD.TYPE_BYTES, _FIELD.LABEL_OPTIONAL),
        ("IsCA", 8, _FIELD.TYPE_BOOL, _FIELD.LABEL_OPTIONAL),
        ("Issuer", 9, _FIELD.TYPE_BYTES, _FIELD.LABEL_OPTIONAL),
        # enum Curve on the wire; a varint either way
        ("curve", 100, _FIELD.TYPE_INT32, _FIELD.LABEL_OPTIONAL),
    ):
        details.field.add(name=name, number=number, type=kind, label=label)

    cert = file_proto.message_type.add(name="RawNebulaCertificate")
    cert.field.add(
        name="Details",
        number=1,
        type=_FIELD.TYPE_MESSAGE,
        label=_FIELD.LABEL_OPTIONAL,
        type_name=f".{_V1_PACKAGE}.RawNebulaCertificateDetails",
    )
    cert.field.add(name="Signature", number=2, type=_FIELD.TYPE_BYTES, label=_FIELD.LABEL_OPTIONAL)

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return message_factory.GetMessageClass(
        pool.FindMessageTypeByName(f"{_V1_PACKAGE}.RawNebulaCertificate")
    )


RawNebulaCertificate = _build_v1_message()


def _v1_networks(pairs: list[int]) -> list[IPNetwork]:
    """Convert flat (ip, mask) uint32 pairs into interfaces."""
    if len(pairs) % 2 != 0:
        raise ValueError("encoded networks should be in (ip, mask) pairs")
    return [
        ipaddress.IPv4Interface((ip, str(ipaddress.IPv4Address(mask))))
        for ip, mask in zip(pairs[::2], pairs[1::2])
    ]


@dataclass(frozen=True, slots=True)
class NebulaCertificateV1(_NebulaCertificateBase):
    """Decoded v1 (protobuf) certificate."""

    raw: Message | None = field(default=None, repr=False, compare=False)

    @property
    def version(self) -> int:
        return 1

    def fingerprint(self) -> Result[str]:
        """SHA-256 of the deterministic protobuf encoding of the whole certificate."""
        return Result.from_computation(
            lambda: _sha256_hex(self._encoded()),
            ErrorCode.FINGERPRINT_ERROR,
            f"fingerprint v1 certificate {self.name!r}",
        )

    def _encoded(self) -> bytes:
        if self.raw is None:
            raise ValueError("certificate has no encoded form")
        return self.raw.SerializeToString(deterministic=True)

    def to_json(self) -> Result[str]:
        def _document(fingerprint: str) -> str:
            details = self._details_json()
            details["publicKey"] = self.public_key.hex()
            details["curve"] = self.curve
            return json.dumps(
                {
                    "details": details,
                    "fingerprint": fingerprint,
                    "signature": self.signature.hex(),
                    "version": self.version,
                },
                sort_keys=True,
                separators=(",", ":"),
            )

        return self.fingerprint().map(_document)


def decode_v1(body: bytes) -> NebulaCertificateV1:
    """Decode a v1 protobuf body. Raises on malformed input."""
    raw = RawNebulaCertificate()
    raw.ParseFromString(body)
    if not raw.HasField("Details"):
        raise ValueError("encoded Details was nil")
    details = raw.Details
    return NebulaCertificateV1(
        name=details.Name,
        groups=list(details.Groups),
        networks=_v1_networks(list(details.Ips)),
        unsafe_networks=_v1_networks(list(details.Subnets)),
        not_before=_from_unix(details.NotBefore),
        not_after=_from_unix(details.NotAfter),
        is_ca=details.IsCA,
        issuer=bytes(details.Issuer),
        public_key=bytes(details.PublicKey),
        curve=_CURVE_NAMES.get(details.curve, str(details.curve)),
        signature=bytes(raw.Signature),
        raw=raw,
    )


# ─────────────────────── v2: ASN.1 DER ───────────────────────


def _context(number: int, constructed: bool = False) -> tag.Tag:
    fmt = tag.tagFormatConstructed if constructed else tag.tagFormatSimple
    return tag.Tag(tag.tagClassContext, fmt, number)


class _Networks(univ.SequenceOf):
    componentType = univ.OctetString()


class _Groups(univ.SequenceOf):
    componentType = char.UTF8String()


class _Curve(univ.Enumerated):
    namedValues = namedval.NamedValues((CURVE25519, 0), (P256, 1))


class NebulaDetailsV2Schema(univ.Sequence):
    """ASN.1 SEQUENCE for the details of a v2 certificate."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("name", char.UTF8String().subtype(implicitTag=_context(0))),
        namedtype.OptionalNamedType(
            "networks", _Networks().subtype(implicitTag=_context(1, constructed=True))
        ),
        namedtype.OptionalNamedType(
            "unsafeNetworks", _Networks().subtype(implicitTag=_context(2, constructed=True))
        ),
        namedtype.OptionalNamedType(
            "groups", _Groups().subtype(implicitTag=_context(3, constructed=True))
        ),
        namedtype.DefaultedNamedType("isCA", univ.Boolean(False).subtype(implicitTag=_context(4))),
        namedtype.NamedType("notBefore", univ.Integer().subtype(implicitTag=_context(5))),
        namedtype.NamedType("notAfter", univ.Integer().subtype(implicitTag=_context(6))),
        namedtype.OptionalNamedType("issuer", univ.OctetString().subtype(implicitTag=_context(7))),
    )


class NebulaCertificateV2Schema(univ.Sequence):
    """ASN.1 SEQUENCE for a whole v2 certificate."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType(
            "details", NebulaDetailsV2Schema().subtype(implicitTag=_context(0, constructed=True))
        ),
        namedtype.DefaultedNamedType("curve", _Curve(CURVE25519).subtype(implicitTag=_context(1))),
        namedtype.OptionalNamedType(
            "publicKey", univ.OctetString().subtype(implicitTag=_context(2))
        ),
        namedtype.NamedType("signature", univ.OctetString().subtype(implicitTag=_context(3))),
    )


def _present(seq: univ.Sequence, name: str) -> Any:
    """Component value, or None when an OPTIONAL component is absent."""
    return seq.getComponentByName(name, default=None, instantiate=False)


def _v2_network(encoded: bytes) -> IPNetwork:
    if len(encoded) not in (5, 17):
        raise ValueError(f"invalid network encoding of {len(encoded)} bytes")
    address = ipaddress.ip_address(encoded[:-1])
    return ipaddress.ip_interface(f"{address}/{encoded[-1]}")


def _v2_networks(value: Any) -> list[IPNetwork]:
    return [] if value is None else [_v2_network(bytes(n)) for n in value]


@dataclass(frozen=True, slots=True)
class NebulaCertificateV2(_NebulaCertificateBase):
    """Decoded v2 (ASN.1) certificate."""

    raw_details: bytes = field(default=b"", repr=False)
    curve_id: int = 0

    @property
    def version(self) -> int:
        return 2

    def fingerprint(self) -> Result[str]:
        """SHA-256 over the details element, curve byte, public key and signature."""
        if not self.raw_details:
            return Result.failure(
                ErrorCode.FINGERPRINT_ERROR,
                f"fingerprint v2 certificate {self.name!r}: missing details",
            )
        return Result.from_computation(
            lambda: _sha256_hex(
                self.raw_details + bytes([self.curve_id]) + self.public_key + self.signature
            ),
            ErrorCode.FINGERPRINT_ERROR,
            f"fingerprint v2 certificate {self.name!r}",
        )

    def to_json(self) -> Result[str]:
        def _document(fingerprint: str) -> str:
            return json.dumps(
                {
                    "details": self._details_json(),
                    "version": self.version,
                    "publicKey": self.public_key.hex(),
                    "curve": self.curve,
                    "fingerprint": fingerprint,
                    "signature": self.signature.hex(),
                },
                sort_keys=True,
                separators=(",", ":"),
            )

        return self.fingerprint().map(_document)


def decode_v2(body: bytes) -> NebulaCertificateV2:
    """Decode a v2 DER body. Raises on malformed input or trailing data."""
    cert, rest = der_decoder.decode(body, asn1Spec=NebulaCertificateV2Schema())
    if rest:
        raise ValueError(f"{len(rest)} bytes of trailing data after certificate")
    details = cert["details"]
    name = str(details["name"])
    if not name:
        raise ValueError("certificate name is empty")
    groups = _present(details, "groups")
    issuer = _present(details, "issuer")
    public_key = _present(cert, "publicKey")
    curve_id = int(cert["curve"])
    return NebulaCertificateV2(
        name=name,
        groups=[] if groups is None else [str(g) for g in groups],
        networks=_v2_networks(_present(details, "networks")),
        unsafe_networks=_v2_networks(_present(details, "unsafeNetworks")),
        not_before=_from_unix(int(details["notBefore"])),
        not_after=_from_unix(int(details["notAfter"])),
        is_ca=bool(details["isCA"]),
        issuer=b"" if issuer is None else bytes(issuer),
        public_key=b"" if public_key is None else bytes(public_key),
        curve=_CURVE_NAMES.get(curve_id, str(curve_id)),
        signature=bytes(cert["signature"]),
        # DER is canonical, so re-encoding yields the details element as read
        raw_details=der_encoder.encode(details),
        curve_id=curve_id,
    )


# ─────────────────────── Public Decoder Class ───────────────────────

# (BEGIN, END) marker pairs, indexed by certificate version - 1
_PEM_MARKERS = (
    (f"-----BEGIN {BANNER_V1}-----", f"-----END {BANNER_V1}-----"),
    (f"-----BEGIN {BANNER_V2}-----", f"-----END {BANNER_V2}-----"),
)

_BEGIN_INDEX = {begin: index for index, (begin, _) in enumerate(_PEM_MARKERS)}

_DECODERS: tuple[Callable[[bytes], Certificate], ...] = (decode_v1, decode_v2)


def unarmor(pem: bytes) -> tuple[int, bytes]:
    """
    Return (marker index, body) of the first Nebula PEM block.

    Body lines are joined before base64 decoding, so any line width is
    accepted. Raises ValueError when no block, or no matching END, is found.
    """
    index = -1
    body: list[str] = []
    for line in pem.decode("ascii").splitlines():
        line = line.strip()
        if index < 0:
            index = _BEGIN_INDEX.get(line, -1)
        elif line == _PEM_MARKERS[index][1]:
            return index, base64.b64decode("".join(body), validate=True)
        else:
            body.append(line)
    if index < 0:
        raise ValueError("no Nebula certificate PEM block found")
    raise ValueError(f"PEM block has no {_PEM_MARKERS[index][1]} line")


class NebulaCertificateDecoder:
    """
    Decode one PEM-armored Nebula certificate.

    Implements the CertificateDecoder port. All exceptions are caught at this
    adapter boundary via Result.from_computation() and reported as
    CERT_DECODE_ERROR.
    """

    def decode(self, pem: bytes) -> Result[Certificate]:
        return Result.from_computation(
            lambda: self._do_decode(pem),
            ErrorCode.CERT_DECODE_ERROR,
            "Failed to decode Nebula certificate",
        ).peek(lambda cert: log.debug("decoder.decoded", version=cert.version, name=cert.name))

    def _do_decode(self, pem: bytes) -> Certificate:
        index, body = unarmor(pem)
        if not body:
            raise ValueError("empty PEM block")
        return _DECODERS[index](body)
