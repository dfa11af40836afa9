"""SSZ encoding and hash tree roots for the fixed-size beacon containers."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterator

_CHUNK_SIZE = 32
_UINT64_SIZE = 8
_UINT64_LIMIT = 1 << 64

# A field is either a fixed-length byte vector (its length) or a uint64 (None).
_Schema = tuple[tuple[str, "int | None"], ...]


class SszError(ValueError):
    """Raised when a container cannot be encoded, decoded or hashed."""


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def _pad_to_chunk(data: bytes) -> bytes:
    return data + bytes(-len(data) % _CHUNK_SIZE)


def _merkleize(chunks: list[bytes]) -> bytes:
    """Merkle root of the chunks, padded with zero chunks to a power of two."""
    if not chunks:
        return bytes(_CHUNK_SIZE)
    width = 1
    while width < len(chunks):
        width *= 2
    layer = chunks + [bytes(_CHUNK_SIZE)] * (width - len(chunks))
    while len(layer) > 1:
        layer = [_sha256(left + right) for left, right in zip(layer[::2], layer[1::2])]
    return layer[0]


def _bytes_leaf(data: bytes) -> bytes:
    if len(data) <= _CHUNK_SIZE:
        return _pad_to_chunk(data)
    padded = _pad_to_chunk(data)
    chunks = [padded[start:start + _CHUNK_SIZE] for start in range(0, len(padded), _CHUNK_SIZE)]
    return _merkleize(chunks)


def _uint64_bytes(name: str, value: int) -> bytes:
    if not 0 <= value < _UINT64_LIMIT:
        raise SszError(f"{name}: value {value} does not fit in a uint64")
    return value.to_bytes(_UINT64_SIZE, "little")


def _ssz_size(schema: _Schema) -> int:
    return sum(_UINT64_SIZE if length is None else length for _, length in schema)


def _checked_fields(obj: Any) -> Iterator[tuple[int | None, bytes]]:
    """Yield each field's kind and encoded bytes, validating lengths."""
    for name, length in obj._SCHEMA:
        qualified = f"{type(obj).__name__}.{name}"
        value = getattr(obj, name)
        if length is None:
            yield None, _uint64_bytes(qualified, value)
            continue
        raw = bytes(value)
        if len(raw) != length:
            raise SszError(f"{qualified}: expected {length} bytes, found {len(raw)}")
        yield length, raw


def _encode(obj: Any) -> bytes:
    return b"".join(raw for _, raw in _checked_fields(obj))


def _decode(cls: type, data: bytes) -> Any:
    data = bytes(data)
    size = _ssz_size(cls._SCHEMA)
    if len(data) != size:
        raise SszError(f"incorrect size: {cls.__name__} needs {size} bytes, got {len(data)}")
    values = {}
    offset = 0
    for name, length in cls._SCHEMA:
        width = _UINT64_SIZE if length is None else length
        piece = data[offset:offset + width]
        values[name] = int.from_bytes(piece, "little") if length is None else piece
        offset += width
    return cls(**values)


def _hash_tree_root(obj: Any) -> bytes:
    leaves = [
        _pad_to_chunk(raw) if length is None else _bytes_leaf(raw)
        for length, raw in _checked_fields(obj)
    ]
    return _merkleize(leaves)


@dataclass
class DepositDataNoSignature:
    """Deposit data without the signature field."""

    _SCHEMA: ClassVar[_Schema] = (
        ("public_key", 48),
        ("withdrawal_credentials", 32),
        ("amount", None),
    )

    public_key: bytes = b""
    withdrawal_credentials: bytes = b""
    amount: int = 0

    def encode(self) -> bytes:
        """Serialize to SSZ bytes."""
        return _encode(self)

    @classmethod
    def decode(cls, data: bytes) -> "DepositDataNoSignature":
        """Deserialize from SSZ bytes."""
        return _decode(cls, data)

    def hash_tree_root(self) -> bytes:
        """The 32-byte SSZ hash tree root."""
        return _hash_tree_root(self)


@dataclass
class DepositData:
    """Deposit data including the signature."""

    _SCHEMA: ClassVar[_Schema] = (
        ("public_key", 48),
        ("withdrawal_credentials", 32),
        ("amount", None),
        ("signature", 96),
    )

    public_key: bytes = b""
    withdrawal_credentials: bytes = b""
    amount: int = 0
    signature: bytes = b""

    def encode(self) -> bytes:
        """Serialize to SSZ bytes."""
        return _encode(self)

    @classmethod
    def decode(cls, data: bytes) -> "DepositData":
        """Deserialize from SSZ bytes."""
        return _decode(cls, data)

    def hash_tree_root(self) -> bytes:
        """The 32-byte SSZ hash tree root."""
        return _hash_tree_root(self)


@dataclass
class SigningRoot:
    """An object root bound to a signing domain."""

    _SCHEMA: ClassVar[_Schema] = (
        ("object_root", 32),
        ("domain", 32),
    )

    object_root: bytes = b""
    domain: bytes = b""

    def encode(self) -> bytes:
        """Serialize to SSZ bytes."""
        return _encode(self)

    @classmethod
    def decode(cls, data: bytes) -> "SigningRoot":
        """Deserialize from SSZ bytes."""
        return _decode(cls, data)

    def hash_tree_root(self) -> bytes:
        """The 32-byte SSZ hash tree root."""
        return _hash_tree_root(self)


@dataclass
class VoluntaryExit:
    """A validator's voluntary exit message."""

    _SCHEMA: ClassVar[_Schema] = (
        ("epoch", None),
        ("validator_index", None),
    )

    epoch: int = 0
    validator_index: int = 0

    def encode(self) -> bytes:
        """Serialize to SSZ bytes."""
        return _encode(self)

    @classmethod
    def decode(cls, data: bytes) -> "VoluntaryExit":
        """Deserialize from SSZ bytes."""
        return _decode(cls, data)

    def hash_tree_root(self) -> bytes:
        """The 32-byte SSZ hash tree root."""
        return _hash_tree_root(self)


@dataclass
class WithdrawalCredentialsChange:
    """A request to move withdrawal credentials from a BLS key to an execution address."""

    _SCHEMA: ClassVar[_Schema] = (
        ("validator_index", None),
        ("from_bls_pubkey", 48),
        ("to_execution_address", 20),
    )

    validator_index: int = 0
    from_bls_pubkey: bytes = field(default_factory=lambda: bytes(48))
    to_execution_address: bytes = field(default_factory=lambda: bytes(20))

    def encode(self) -> bytes:
        """Serialize to SSZ bytes."""
        return _encode(self)

    @classmethod
    def decode(cls, data: bytes) -> "WithdrawalCredentialsChange":
        """Deserialize from SSZ bytes."""
        return _decode(cls, data)

    def hash_tree_root(self) -> bytes:
        """The 32-byte SSZ hash tree root."""
        return _hash_tree_root(self)