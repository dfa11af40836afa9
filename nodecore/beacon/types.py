"""Beacon chain data types shared by the clients."""

from __future__ import annotations

import binascii
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from nodecore.beacon.keys import ValidatorPubkey

_HASH_LENGTH = 32
_ADDRESS_LENGTH = 20


@dataclass
class ValidatorStatusOptions:
    """Selects the state a validator status is read from."""

    epoch: int | None = None
    slot: int | None = None


@dataclass
class SyncStatus:
    syncing: bool = False
    progress: float = 0.0


@dataclass
class Eth2Config:
    genesis_fork_version: bytes = b""
    genesis_validators_root: bytes = b""
    genesis_epoch: int = 0
    genesis_time: int = 0
    seconds_per_slot: int = 0
    slots_per_epoch: int = 0
    seconds_per_epoch: int = 0
    epochs_per_sync_committee_period: int = 0


@dataclass
class Eth2DepositContract:
    chain_id: int = 0
    address: bytes = bytes(_ADDRESS_LENGTH)


@dataclass
class BeaconHead:
    epoch: int = 0
    finalized_epoch: int = 0
    justified_epoch: int = 0
    previous_justified_epoch: int = 0


class ValidatorState(str, Enum):
    """Lifecycle state of a validator as reported by a beacon node."""

    PENDING_INITIALIZED = "pending_initialized"
    PENDING_QUEUED = "pending_queued"
    ACTIVE_ONGOING = "active_ongoing"
    ACTIVE_EXITING = "active_exiting"
    ACTIVE_SLASHED = "active_slashed"
    EXITED_UNSLASHED = "exited_unslashed"
    EXITED_SLASHED = "exited_slashed"
    WITHDRAWAL_POSSIBLE = "withdrawal_possible"
    WITHDRAWAL_DONE = "withdrawal_done"


@dataclass
class ValidatorStatus:
    pubkey: ValidatorPubkey = field(default_factory=ValidatorPubkey)
    index: str = ""
    withdrawal_credentials: bytes = bytes(_HASH_LENGTH)
    balance: int = 0
    status: ValidatorState | None = None
    effective_balance: int = 0
    slashed: bool = False
    activation_eligibility_epoch: int = 0
    activation_epoch: int = 0
    exit_epoch: int = 0
    withdrawable_epoch: int = 0
    exists: bool = False


@dataclass
class Eth1Data:
    deposit_root: bytes = bytes(_HASH_LENGTH)
    deposit_count: int = 0
    block_hash: bytes = bytes(_HASH_LENGTH)


@dataclass
class BeaconBlockHeader:
    slot: int = 0
    proposer_index: str = ""


@dataclass
class AttestationInfo:
    aggregation_bits: bytes = b""
    slot_index: int = 0
    committee_index: int = 0


@dataclass
class BeaconBlock:
    header: BeaconBlockHeader = field(default_factory=BeaconBlockHeader)
    has_execution_payload: bool = False
    attestations: list[AttestationInfo] = field(default_factory=list)
    fee_recipient: bytes = bytes(_ADDRESS_LENGTH)
    execution_block_number: int = 0


def _decode_byte_array(value: Any) -> bytes:
    if not isinstance(value, str):
        raise ValueError(f"expected a hex string, got {type(value).__name__}")
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid hex string '{value}': {exc}") from exc


@dataclass
class ValidatorKeystore:
    """Encrypted validator keystore in the EIP-2335 layout."""

    crypto: dict[str, Any] = field(default_factory=dict)
    name: str = ""
    version: int = 0
    uuid: uuid.UUID = field(default_factory=lambda: uuid.UUID(int=0))
    path: str = ""
    pubkey: ValidatorPubkey = field(default_factory=ValidatorPubkey)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"crypto": self.crypto}
        if self.name:
            result["name"] = self.name
        result["version"] = self.version
        result["uuid"] = str(self.uuid)
        result["path"] = self.path
        result["pubkey"] = self.pubkey.hex()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidatorKeystore:
        raw_uuid = data.get("uuid")
        raw_pubkey = data.get("pubkey")
        return cls(
            crypto=dict(data.get("crypto") or {}),
            name=data.get("name", ""),
            version=int(data.get("version", 0)),
            uuid=uuid.UUID(raw_uuid) if raw_uuid else uuid.UUID(int=0),
            path=data.get("path", ""),
            pubkey=ValidatorPubkey.from_hex(raw_pubkey) if raw_pubkey else ValidatorPubkey(),
        )


_DEPOSIT_BYTE_FIELDS = {
    "public_key": "pubkey",
    "withdrawal_credentials": "withdrawal_credentials",
    "signature": "signature",
    "deposit_message_root": "deposit_message_root",
    "deposit_data_root": "deposit_data_root",
    "fork_version": "fork_version",
}


@dataclass
class ExtendedDepositData:
    """Deposit data with the extra fields the deposit CLI writes."""

    public_key: bytes = b""
    withdrawal_credentials: bytes = b""
    amount: int = 0
    signature: bytes = b""
    deposit_message_root: bytes = b""
    deposit_data_root: bytes = b""
    fork_version: bytes = b""
    network_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "pubkey": self.public_key.hex(),
            "withdrawal_credentials": self.withdrawal_credentials.hex(),
            "amount": self.amount,
            "signature": self.signature.hex(),
            "deposit_message_root": self.deposit_message_root.hex(),
            "deposit_data_root": self.deposit_data_root.hex(),
            "fork_version": self.fork_version.hex(),
            "network_name": self.network_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtendedDepositData:
        byte_values = {
            attr: _decode_byte_array(data[key])
            for attr, key in _DEPOSIT_BYTE_FIELDS.items()
            if key in data
        }
        return cls(
            amount=int(data.get("amount", 0)),
            network_name=data.get("network_name", ""),
            **byte_values,
        )