"""Request and response bodies of the standard beacon node REST API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from nodecore.beacon.keys import decode_hex, encode_hex_with_prefix

_UINT64_LIMIT = 1 << 64
_ADDRESS_LENGTH = 20


def parse_uinteger(value: Any) -> int:
    """Parse an unsigned 64-bit integer given as a JSON number or decimal string."""
    if isinstance(value, bool):
        raise ValueError("expected an unsigned integer, got a boolean")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        if not (value.isascii() and value.isdigit()):
            raise ValueError(f"invalid unsigned integer '{value}'")
        number = int(value)
    else:
        raise ValueError(f"expected an unsigned integer, got {type(value).__name__}")
    if not 0 <= number < _UINT64_LIMIT:
        raise ValueError(f"value {number} does not fit in a uint64")
    return number


def parse_byte_array(value: Any) -> bytes:
    """Parse a hex string, with an optional 0x prefix, into bytes."""
    if not isinstance(value, str):
        raise ValueError(f"expected a hex string, got {type(value).__name__}")
    return decode_hex(value)


def _object(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return value


def _field(obj: Mapping[str, Any], key: str, parse, default):
    value = obj.get(key)
    if value is None:
        return default
    try:
        return parse(value)
    except ValueError as exc:
        raise ValueError(f"field '{key}': {exc}") from exc


def _uint(obj: Mapping[str, Any], key: str) -> int:
    return _field(obj, key, parse_uinteger, 0)


def _bytes(obj: Mapping[str, Any], key: str) -> bytes:
    return _field(obj, key, parse_byte_array, b"")


def _expect(kind: type, name: str):
    def check(value: Any) -> Any:
        if not isinstance(value, kind):
            raise ValueError(f"expected {name}, got {type(value).__name__}")
        return value

    return check


def _str(obj: Mapping[str, Any], key: str) -> str:
    return _field(obj, key, _expect(str, "a string"), "")


def _bool(obj: Mapping[str, Any], key: str) -> bool:
    return _field(obj, key, _expect(bool, "a boolean"), False)


def _list(obj: Mapping[str, Any], key: str) -> list:
    return _field(obj, key, _expect(list, "a list"), [])


def _data(data: Any) -> Mapping[str, Any]:
    return _object(_object(data, "response").get("data"), "field 'data'")


def _address(value: Any) -> bytes:
    if not isinstance(value, str) or not value[:2].lower() == "0x":
        raise ValueError("address must be a 0x-prefixed hex string")
    raw = decode_hex(value)
    if len(raw) != _ADDRESS_LENGTH:
        raise ValueError(f"address must be {_ADDRESS_LENGTH} bytes long, got {len(raw)}")
    return raw


@dataclass
class VoluntaryExitRequest:
    """A signed voluntary exit to broadcast."""

    epoch: int = 0
    validator_index: str = ""
    signature: bytes = b""

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": {"epoch": str(self.epoch), "validator_index": self.validator_index},
            "signature": encode_hex_with_prefix(self.signature),
        }


@dataclass
class BLSToExecutionChangeRequest:
    """A signed change of withdrawal credentials to an execution address."""

    validator_index: str = ""
    from_bls_pubkey: bytes = b""
    to_execution_address: bytes = b""
    signature: bytes = b""

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": {
                "validator_index": self.validator_index,
                "from_bls_pubkey": encode_hex_with_prefix(self.from_bls_pubkey),
                "to_execution_address": encode_hex_with_prefix(self.to_execution_address),
            },
            "signature": encode_hex_with_prefix(self.signature),
        }


@dataclass
class SyncStatusResponse:
    is_syncing: bool = False
    head_slot: int = 0
    sync_distance: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> SyncStatusResponse:
        body = _data(data)
        return cls(
            is_syncing=_bool(body, "is_syncing"),
            head_slot=_uint(body, "head_slot"),
            sync_distance=_uint(body, "sync_distance"),
        )


@dataclass
class Eth2ConfigResponse:
    seconds_per_slot: int = 0
    slots_per_epoch: int = 0
    epochs_per_sync_committee_period: int = 0
    capella_fork_version: bytes = b""

    @classmethod
    def from_dict(cls, data: Any) -> Eth2ConfigResponse:
        body = _data(data)
        return cls(
            seconds_per_slot=_uint(body, "SECONDS_PER_SLOT"),
            slots_per_epoch=_uint(body, "SLOTS_PER_EPOCH"),
            epochs_per_sync_committee_period=_uint(body, "EPOCHS_PER_SYNC_COMMITTEE_PERIOD"),
            capella_fork_version=_bytes(body, "CAPELLA_FORK_VERSION"),
        )


@dataclass
class Eth2DepositContractResponse:
    chain_id: int = 0
    address: bytes = bytes(_ADDRESS_LENGTH)

    @classmethod
    def from_dict(cls, data: Any) -> Eth2DepositContractResponse:
        body = _data(data)
        return cls(
            chain_id=_uint(body, "chain_id"),
            address=_field(body, "address", _address, bytes(_ADDRESS_LENGTH)),
        )


@dataclass
class GenesisResponse:
    genesis_time: int = 0
    genesis_fork_version: bytes = b""
    genesis_validators_root: bytes = b""

    @classmethod
    def from_dict(cls, data: Any) -> GenesisResponse:
        body = _data(data)
        return cls(
            genesis_time=_uint(body, "genesis_time"),
            genesis_fork_version=_bytes(body, "genesis_fork_version"),
            genesis_validators_root=_bytes(body, "genesis_validators_root"),
        )


@dataclass
class FinalityCheckpointsResponse:
    previous_justified_epoch: int = 0
    current_justified_epoch: int = 0
    finalized_epoch: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> FinalityCheckpointsResponse:
        body = _data(data)

        def epoch(key: str) -> int:
            return _uint(_object(body.get(key), f"field '{key}'"), "epoch")

        return cls(
            previous_justified_epoch=epoch("previous_justified"),
            current_justified_epoch=epoch("current_justified"),
            finalized_epoch=epoch("finalized"),
        )


@dataclass
class Attestation:
    aggregation_bits: str = ""
    slot: int = 0
    index: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> Attestation:
        obj = _object(data, "attestation")
        inner = _object(obj.get("data"), "field 'data'")
        return cls(
            aggregation_bits=_str(obj, "aggregation_bits"),
            slot=_uint(inner, "slot"),
            index=_uint(inner, "index"),
        )


@dataclass
class AttestationsResponse:
    data: list[Attestation] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> AttestationsResponse:
        obj = _object(data, "response")
        return cls(data=[Attestation.from_dict(item) for item in _list(obj, "data")])


@dataclass
class BeaconBlockResponse:
    slot: int = 0
    proposer_index: str = ""
    deposit_root: bytes = b""
    deposit_count: int = 0
    block_hash: bytes = b""
    attestations: list[Attestation] = field(default_factory=list)
    has_execution_payload: bool = False
    fee_recipient: bytes = b""
    execution_block_number: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> BeaconBlockResponse:
        message = _object(_data(data).get("message"), "field 'message'")
        body = _object(message.get("body"), "field 'body'")
        eth1 = _object(body.get("eth1_data"), "field 'eth1_data'")
        result = cls(
            slot=_uint(message, "slot"),
            proposer_index=_str(message, "proposer_index"),
            deposit_root=_bytes(eth1, "deposit_root"),
            deposit_count=_uint(eth1, "deposit_count"),
            block_hash=_bytes(eth1, "block_hash"),
            attestations=[Attestation.from_dict(item) for item in _list(body, "attestations")],
        )
        payload = body.get("execution_payload")
        if payload is not None:
            payload = _object(payload, "field 'execution_payload'")
            result.has_execution_payload = True
            result.fee_recipient = _bytes(payload, "fee_recipient")
            result.execution_block_number = _uint(payload, "block_number")
        return result


@dataclass
class BeaconBlockHeaderResponse:
    finalized: bool = False
    root: str = ""
    canonical: bool = False
    slot: int = 0
    proposer_index: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> BeaconBlockHeaderResponse:
        obj = _object(data, "response")
        body = _data(obj)
        header = _object(body.get("header"), "field 'header'")
        message = _object(header.get("message"), "field 'message'")
        return cls(
            finalized=_bool(obj, "finalized"),
            root=_str(body, "root"),
            canonical=_bool(body, "canonical"),
            slot=_uint(message, "slot"),
            proposer_index=_str(message, "proposer_index"),
        )


@dataclass
class Validator:
    index: str = ""
    balance: int = 0
    status: str = ""
    pubkey: bytes = b""
    withdrawal_credentials: bytes = b""
    effective_balance: int = 0
    slashed: bool = False
    activation_eligibility_epoch: int = 0
    activation_epoch: int = 0
    exit_epoch: int = 0
    withdrawable_epoch: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> Validator:
        obj = _object(data, "validator")
        inner = _object(obj.get("validator"), "field 'validator'")
        return cls(
            index=_str(obj, "index"),
            balance=_uint(obj, "balance"),
            status=_str(obj, "status"),
            pubkey=_bytes(inner, "pubkey"),
            withdrawal_credentials=_bytes(inner, "withdrawal_credentials"),
            effective_balance=_uint(inner, "effective_balance"),
            slashed=_bool(inner, "slashed"),
            activation_eligibility_epoch=_uint(inner, "activation_eligibility_epoch"),
            activation_epoch=_uint(inner, "activation_epoch"),
            exit_epoch=_uint(inner, "exit_epoch"),
            withdrawable_epoch=_uint(inner, "withdrawable_epoch"),
        )


@dataclass
class ValidatorsResponse:
    data: list[Validator] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ValidatorsResponse:
        obj = _object(data, "response")
        return cls(data=[Validator.from_dict(item) for item in _list(obj, "data")])


@dataclass
class SyncDutiesResponse:
    """Validator indices that hold sync committee duties."""

    validator_indices: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> SyncDutiesResponse:
        obj = _object(data, "response")
        indices = []
        for item in _list(obj, "data"):
            duty = _object(item, "sync duty")
            _bytes(duty, "pubkey")
            for committee_index in _list(duty, "validator_sync_committee_indices"):
                parse_uinteger(committee_index)
            indices.append(_str(duty, "validator_index"))
        return cls(validator_indices=indices)


@dataclass
class ProposerDutiesResponse:
    """Validator indices that hold block proposal duties, one entry per duty."""

    validator_indices: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ProposerDutiesResponse:
        obj = _object(data, "response")
        return cls(
            validator_indices=[
                _str(_object(item, "proposer duty"), "validator_index")
                for item in _list(obj, "data")
            ]
        )


@dataclass
class Committee:
    index: int = 0
    slot: int = 0
    validators: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Committee:
        obj = _object(data, "committee")
        for key in ("index", "slot", "validators"):
            if key not in obj:
                raise ValueError(f"committee is missing field '{key}'")
        validators = [
            _expect(str, "a string")(value) for value in _list(obj, "validators")
        ]
        return cls(index=_uint(obj, "index"), slot=_uint(obj, "slot"), validators=validators)


@dataclass
class CommitteesResponse:
    """Attestation committees, accessed by position."""

    data: list[Committee] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> CommitteesResponse:
        obj = _object(data, "response")
        return cls(data=[Committee.from_dict(item) for item in _list(obj, "data")])

    def __len__(self) -> int:
        return len(self.data)

    def index(self, idx: int) -> int:
        return self.data[idx].index

    def slot(self, idx: int) -> int:
        return self.data[idx].slot

    def validators(self, idx: int) -> list[str]:
        return self.data[idx].validators