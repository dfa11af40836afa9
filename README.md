# nodecore

Building blocks for programs that manage Ethereum nodes.

## What is in it

- `nodecore.beacon.keys`: `ValidatorPubkey` (48 bytes) and `ValidatorSignature`
  (96 bytes), immutable `bytes` subclasses with hex, JSON and YAML forms, plus
  `decode_hex`, `encode_hex_with_prefix`, `remove_prefix`,
  `hex_to_validator_pubkey` and `hex_to_validator_signature`.
- `nodecore.beacon.types`: dataclasses for sync status, chain config, beacon
  head, validator status (`ValidatorState` enum), blocks and attestations, and
  the JSON-ready `ValidatorKeystore` and `ExtendedDepositData`.
- `nodecore.beacon.ssz`: the fixed-size SSZ containers `DepositDataNoSignature`,
  `DepositData`, `SigningRoot`, `VoluntaryExit` and `WithdrawalCredentialsChange`,
  each with `encode`, `decode` and `hash_tree_root`. Bad sizes raise `SszError`.
- `nodecore.beacon.responses`: request and response bodies of the standard
  Beacon REST API, parsed with `from_dict` (numbers given as strings or JSON
  numbers, bytes as hex).
- `nodecore.beacon.http_provider`: `BeaconHttpProvider`, one method per Beacon
  API route (`node_syncing`, `config_spec`, `beacon_genesis`, `beacon_validators`,
  `beacon_committees`, `beacon_block`, `beacon_voluntary_exits_post`, …).
  Routes that can find nothing return `None` on HTTP 404; other failures raise
  `BeaconApiError`.
- `nodecore.beacon.events`: `EventStream` polls a node's event endpoint in a
  background thread and yields `Event` items (head events arrive as `HeadEvent`);
  `parse_event` and `split_events` handle the text format.
- `nodecore.api.types`: `ApiResponse`, `ResponseStatus`, `DataBatch`,
  `ClientStatus` and `ClientManagerStatus`.
- `nodecore.api.client`: `send_get_request`, `send_post_request`,
  `raw_get_request`, `raw_post_request`, `handle_response` and `make_batch_arg`,
  over a `NetworkRequesterContext` (TCP) or `UnixRequesterContext` (Unix socket).
  Failures raise `ApiClientError`.
- `nodecore.api.args`: `validate_arg`, `validate_optional_arg`,
  `get_string_from_vars` and `get_optional_string_from_vars` for parsed query
  strings; a required argument that is absent raises `MissingArgumentError`.
- `nodecore.cli.selection`: `parse_index_selection`, `parse_option_ids`,
  `SelectionOption` and `validate_arg_count` (raises `InvalidArgCountError`).

## Installation

```
pip install nodecore
```

Python 3.10 or newer. Depends on `httpx` and `pyyaml`.

## Examples

Parse a validator pubkey:

```python
from nodecore.beacon.keys import hex_to_validator_pubkey

pubkey = hex_to_validator_pubkey("0x" + "ab" * 48)
print(pubkey.hex_with_prefix())
```

Ask a beacon node for its sync state:

```python
from nodecore.beacon.http_provider import BeaconHttpProvider

with BeaconHttpProvider("http://localhost:5052", timeout=10.0) as provider:
    sync = provider.node_syncing()
    print(sync.is_syncing, sync.head_slot, sync.sync_distance)
```

Follow new chain heads:

```python
with BeaconHttpProvider("http://localhost:5052") as provider:
    with provider.beacon_event_stream(["head"]) as stream:
        for event in stream:
            if event.error is None:
                print(event.data.slot)
```

Compute the signing root of a voluntary exit:

```python
from nodecore.beacon.ssz import SigningRoot, VoluntaryExit

exit_root = VoluntaryExit(epoch=100, validator_index=42).hash_tree_root()
signing_root = SigningRoot(object_root=exit_root, domain=bytes(32)).hash_tree_root()
```

Call a daemon's JSON API:

```python
from nodecore.api.client import NetworkRequesterContext, Requester, send_get_request

with NetworkRequesterContext("http://localhost:8080/node/api/v1") as context:
    requester = Requester(name="Status", route="status", context=context)
    response = send_get_request(requester, "info", "info", None)
    print(response.data)
```

Select items in a command-line prompt:

```python
from nodecore.cli.selection import SelectionOption, parse_index_selection

options = [SelectionOption(element=name, id=name, display=name) for name in "abcde"]
print(parse_index_selection("1, 3-4", options))  # ['a', 'c', 'd']
```

## What it does not do

- There is no API server: the package holds the client side and the shared
  response types, but nothing that listens on a socket and answers requests.
- There is no high-level beacon client. `BeaconHttpProvider` returns the raw
  response dataclasses from `nodecore.beacon.responses`; turning them into the
  types in `nodecore.beacon.types` (validator statuses, beacon head, signing
  domains) is left to the caller.
- It does no BLS cryptography: keys and signatures are carried as bytes and not
  checked.

## Running the tests

```
pip install -e .[test]
pytest
```