"""Fixed-length validator public keys and signatures with hex, JSON and YAML forms."""

from __future__ import annotations

import binascii
import json
from typing import TypeVar

import yaml

VALIDATOR_PUBKEY_LENGTH = 48
VALIDATOR_SIGNATURE_LENGTH = 96

_PREFIX = "0x"

_T = TypeVar("_T", bound="_FixedBytes")


def remove_prefix(value: str) -> str:
    """Strip a leading 0x (or 0X) from a hex string, if present."""
    if value[:2].lower() == _PREFIX:
        return value[2:]
    return value


def encode_hex_with_prefix(data: bytes) -> str:
    """Encode bytes as lower-case hex with a 0x prefix."""
    return _PREFIX + bytes(data).hex()


def decode_hex(value: str) -> bytes:
    """Decode a hex string with an optional 0x prefix."""
    try:
        return binascii.unhexlify(remove_prefix(value))
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid hex string '{value}': {exc}") from exc


class _FixedBytes(bytes):
    """Immutable byte string of a fixed length; the zero value when built without data."""

    LENGTH = 0
    KIND = "value"

    def __new__(cls, value: bytes | bytearray | memoryview | None = None):
        raw = bytes(cls.LENGTH) if value is None else bytes(value)
        if len(raw) != cls.LENGTH:
            raise ValueError(f"{cls.KIND} must be {cls.LENGTH} bytes long, got {len(raw)}")
        return super().__new__(cls, raw)

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self.hex()}')"


def _parse_hex(cls: type[_T], value: str) -> _T:
    try:
        raw = decode_hex(value)
    except ValueError as exc:
        raise ValueError(f"error decoding {cls.KIND}: {exc}") from exc
    if len(raw) != cls.LENGTH:
        raise ValueError(f"invalid {cls.KIND} hex string {value}: invalid length {len(value)}")
    return cls(raw)


def _parse_text(cls: type[_T], text: object) -> _T:
    if not isinstance(text, str):
        raise ValueError(
            f"error decoding {cls.KIND}: expected a string, got {type(text).__name__}"
        )
    try:
        return _parse_hex(cls, text)
    except ValueError as exc:
        raise ValueError(f"value '{text}' cannot be decoded into a {cls.KIND}: {exc}") from exc


def _parse_json(cls: type[_T], data: str | bytes) -> _T:
    try:
        text = json.loads(data)
    except ValueError as exc:
        raise ValueError(f"error decoding {cls.KIND}: {exc}") from exc
    return _parse_text(cls, text)


def _parse_yaml(cls: type[_T], data: str | bytes) -> _T:
    try:
        text = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ValueError(f"error decoding {cls.KIND}: {exc}") from exc
    return _parse_text(cls, text)


class ValidatorPubkey(_FixedBytes):
    """A validator's 48-byte BLS public key."""

    LENGTH = VALIDATOR_PUBKEY_LENGTH
    KIND = "validator pubkey"

    @classmethod
    def from_hex(cls, value: str) -> "ValidatorPubkey":
        """Parse a hex string, with an optional 0x prefix."""
        return _parse_hex(cls, value)

    def hex_with_prefix(self) -> str:
        """Hex representation with a 0x prefix."""
        return encode_hex_with_prefix(self)

    def to_json(self) -> str:
        """Serialize as a JSON string holding the unprefixed hex."""
        return json.dumps(self.hex())

    @classmethod
    def from_json(cls, data: str | bytes) -> "ValidatorPubkey":
        """Deserialize from a JSON string holding hex."""
        return _parse_json(cls, data)

    def to_yaml(self) -> str:
        """Serialize as a YAML document holding the unprefixed hex."""
        return yaml.safe_dump(self.hex())

    @classmethod
    def from_yaml(cls, data: str | bytes) -> "ValidatorPubkey":
        """Deserialize from a YAML document holding hex."""
        return _parse_yaml(cls, data)


class ValidatorSignature(_FixedBytes):
    """A 96-byte signature produced by a validator's private key."""

    LENGTH = VALIDATOR_SIGNATURE_LENGTH
    KIND = "validator signature"

    @classmethod
    def from_hex(cls, value: str) -> "ValidatorSignature":
        """Parse a hex string, with an optional 0x prefix."""
        return _parse_hex(cls, value)

    def hex_with_prefix(self) -> str:
        """Hex representation with a 0x prefix."""
        return encode_hex_with_prefix(self)

    def to_json(self) -> str:
        """Serialize as a JSON string holding the unprefixed hex."""
        return json.dumps(self.hex())

    @classmethod
    def from_json(cls, data: str | bytes) -> "ValidatorSignature":
        """Deserialize from a JSON string holding hex."""
        return _parse_json(cls, data)

    def to_yaml(self) -> str:
        """Serialize as a YAML document holding the unprefixed hex."""
        return yaml.safe_dump(self.hex())

    @classmethod
    def from_yaml(cls, data: str | bytes) -> "ValidatorSignature":
        """Deserialize from a YAML document holding hex."""
        return _parse_yaml(cls, data)


def hex_to_validator_pubkey(value: str) -> ValidatorPubkey:
    """Convert hex (with an optional 0x prefix) to a validator pubkey."""
    return ValidatorPubkey.from_hex(value)


def hex_to_validator_signature(value: str) -> ValidatorSignature:
    """Convert hex (with an optional 0x prefix) to a validator signature."""
    return ValidatorSignature.from_hex(value)