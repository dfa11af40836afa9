import json

import httpx
import pytest

from nodecore.beacon.http_provider import (
    EVENT_STREAM_PATH,
    BeaconApiError,
    BeaconHttpProvider,
)
from nodecore.beacon.responses import BLSToExecutionChangeRequest, VoluntaryExitRequest

BASE = "http://beacon.test"


class Recorder:
    def __init__(self, status=200, payload=None, raw=None):
        self.status = status
        self.payload = payload
        self.raw = raw
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.raw is not None:
            return httpx.Response(self.status, content=self.raw)
        return httpx.Response(self.status, json=self.payload if self.payload is not None else {})


def make_provider(recorder):
    return BeaconHttpProvider(BASE, timeout=5.0, transport=httpx.MockTransport(recorder))


def test_node_syncing_parses_and_uses_path():
    rec = Recorder(payload={"data": {"is_syncing": True, "head_slot": "10", "sync_distance": "5"}})
    with make_provider(rec) as provider:
        result = provider.node_syncing()
    assert result.is_syncing is True
    assert result.head_slot == 10
    assert result.sync_distance == 5
    assert rec.requests[0].method == "GET"
    assert rec.requests[0].url.path == "/eth/v1/node/syncing"


def test_attestations_not_found_returns_none():
    rec = Recorder(status=404, raw=b"missing")
    with make_provider(rec) as provider:
        assert provider.beacon_attestations("head") is None
    assert rec.requests[0].url.path == "/eth/v1/beacon/blocks/head/attestations"


def test_attestations_server_error_raises_with_body():
    rec = Recorder(status=500, raw=b"boom")
    with make_provider(rec) as provider:
        with pytest.raises(BeaconApiError) as info:
            provider.beacon_attestations("12")
    message = str(info.value)
    assert message.startswith("error getting attestations data for slot 12")
    assert "HTTP status 500" in message
    assert "'boom'" in message


def test_attestations_bad_json_raises_decode_error():
    rec = Recorder(raw=b"{not json")
    with make_provider(rec) as provider:
        with pytest.raises(BeaconApiError, match="error decoding attestations data for slot head"):
            provider.beacon_attestations("head")


def test_attestations_parsed():
    rec = Recorder(payload={"data": [{"aggregation_bits": "0x01", "data": {"slot": "3", "index": "4"}}]})
    with make_provider(rec) as provider:
        result = provider.beacon_attestations("head")
    assert len(result.data) == 1
    assert result.data[0].aggregation_bits == "0x01"
    assert (result.data[0].slot, result.data[0].index) == (3, 4)


def test_validators_query_contains_ids():
    rec = Recorder(payload={"data": [{"index": "1", "balance": "32", "status": "active_ongoing",
                                      "validator": {"pubkey": "0xaa", "slashed": False}}]})
    with make_provider(rec) as provider:
        result = provider.beacon_validators("head", ["1", "2"])
    request = rec.requests[0]
    assert request.url.path == "/eth/v1/beacon/states/head/validators"
    assert request.url.params["id"] == "1,2"
    assert result.data[0].index == "1"
    assert result.data[0].pubkey == b"\xaa"


def test_validators_without_ids_has_no_query():
    rec = Recorder(payload={"data": []})
    with make_provider(rec) as provider:
        result = provider.beacon_validators("head", [])
    assert result.data == []
    assert rec.requests[0].url.query == b""


def test_committees_with_epoch():
    rec = Recorder(payload={"data": [{"index": "1", "slot": "2", "validators": ["5", "6"]}]})
    with make_provider(rec) as provider:
        result = provider.beacon_committees("head", 7)
    assert rec.requests[0].url.path == "/eth/v1/beacon/states/head/committees"
    assert rec.requests[0].url.params["epoch"] == "7"
    assert len(result) == 1
    assert result.validators(0) == ["5", "6"]


def test_committees_without_epoch():
    rec = Recorder(payload={"data": []})
    with make_provider(rec) as provider:
        result = provider.beacon_committees("head", None)
    assert "epoch" not in rec.requests[0].url.params
    assert len(result) == 0


def test_committees_error_status():
    rec = Recorder(status=503, raw=b"down")
    with make_provider(rec) as provider:
        with pytest.raises(BeaconApiError, match="error getting committees: HTTP status 503"):
            provider.beacon_committees("head", None)


def test_voluntary_exit_posts_request_body():
    rec = Recorder(payload={})
    request = VoluntaryExitRequest(epoch=9, validator_index="42", signature=b"\x01\x02")
    with make_provider(rec) as provider:
        provider.beacon_voluntary_exits_post(request)
    sent = rec.requests[0]
    assert sent.method == "POST"
    assert sent.url.path == "/eth/v1/beacon/pool/voluntary_exits"
    assert sent.headers["Content-Type"] == "application/json"
    assert json.loads(sent.content) == request.to_dict()


def test_voluntary_exit_failure_names_validator():
    rec = Recorder(status=400, raw=b"bad")
    with make_provider(rec) as provider:
        with pytest.raises(BeaconApiError, match="validator at index 42: HTTP status 400"):
            provider.beacon_voluntary_exits_post(VoluntaryExitRequest(validator_index="42"))


def test_bls_change_is_wrapped_in_array():
    rec = Recorder(payload={})
    request = BLSToExecutionChangeRequest(
        validator_index="3", from_bls_pubkey=b"\x11", to_execution_address=b"\x22", signature=b"\x33"
    )
    with make_provider(rec) as provider:
        provider.beacon_bls_to_execution_changes_post(request)
    assert rec.requests[0].url.path == "/eth/v1/beacon/pool/bls_to_execution_changes"
    assert json.loads(rec.requests[0].content) == [request.to_dict()]


def test_sync_duties_post_sends_indices():
    rec = Recorder(payload={"data": [{"pubkey": "0x01", "validator_index": "2",
                                      "validator_sync_committee_indices": ["0"]}]})
    with make_provider(rec) as provider:
        result = provider.validator_duties_sync_post(["1", "2"], 5)
    assert rec.requests[0].url.path == "/eth/v1/validator/duties/sync/5"
    assert json.loads(rec.requests[0].content) == ["1", "2"]
    assert result.validator_indices == ["2"]


def test_proposer_duties_get():
    rec = Recorder(payload={"data": [{"validator_index": "8"}, {"validator_index": "8"}]})
    with make_provider(rec) as provider:
        result = provider.validator_duties_proposer(["8"], 11)
    assert rec.requests[0].method == "GET"
    assert rec.requests[0].url.path == "/eth/v1/validator/duties/proposer/11"
    assert result.validator_indices == ["8", "8"]


def test_genesis_and_spec():
    genesis = {"data": {"genesis_time": "100", "genesis_fork_version": "0x00000001",
                        "genesis_validators_root": "0xab"}}
    rec = Recorder(payload=genesis)
    with make_provider(rec) as provider:
        result = provider.beacon_genesis()
    assert result.genesis_time == 100
    assert result.genesis_fork_version == b"\x00\x00\x00\x01"
    assert result.genesis_validators_root == b"\xab"

    spec = {"data": {"SECONDS_PER_SLOT": "12", "SLOTS_PER_EPOCH": "32",
                     "EPOCHS_PER_SYNC_COMMITTEE_PERIOD": "256", "CAPELLA_FORK_VERSION": "0x03000000"}}
    rec = Recorder(payload=spec)
    with make_provider(rec) as provider:
        config = provider.config_spec()
    assert rec.requests[0].url.path == "/eth/v1/config/spec"
    assert (config.seconds_per_slot, config.slots_per_epoch) == (12, 32)
    assert config.capella_fork_version == b"\x03\x00\x00\x00"


def test_deposit_contract_and_finality():
    address = "0x" + "11" * 20
    rec = Recorder(payload={"data": {"chain_id": "1", "address": address}})
    with make_provider(rec) as provider:
        contract = provider.config_deposit_contract()
    assert contract.chain_id == 1
    assert contract.address == bytes.fromhex("11" * 20)

    rec = Recorder(payload={"data": {"previous_justified": {"epoch": "1"},
                                     "current_justified": {"epoch": "2"},
                                     "finalized": {"epoch": "3"}}})
    with make_provider(rec) as provider:
        checkpoints = provider.beacon_finality_checkpoints("head")
    assert rec.requests[0].url.path == "/eth/v1/beacon/states/head/finality_checkpoints"
    assert (checkpoints.previous_justified_epoch, checkpoints.current_justified_epoch,
            checkpoints.finalized_epoch) == (1, 2, 3)


def test_block_and_header():
    block = {"data": {"message": {"slot": "5", "proposer_index": "9", "body": {
        "eth1_data": {"deposit_root": "0x01", "deposit_count": "2", "block_hash": "0x03"},
        "attestations": [],
        "execution_payload": {"fee_recipient": "0x04", "block_number": "77"}}}}}
    rec = Recorder(payload=block)
    with make_provider(rec) as provider:
        result = provider.beacon_block("5")
    assert rec.requests[0].url.path == "/eth/v2/beacon/blocks/5"
    assert result.has_execution_payload is True
    assert result.execution_block_number == 77
    assert result.proposer_index == "9"

    rec = Recorder(status=404, raw=b"")
    with make_provider(rec) as provider:
        assert provider.beacon_header("5") is None
        assert provider.beacon_block("5") is None


def test_connection_error_reports_trimmed_path():
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    provider = BeaconHttpProvider(BASE, transport=httpx.MockTransport(refuse))
    with provider:
        with pytest.raises(BeaconApiError) as info:
            provider.beacon_validators("head", ["1"])
    message = str(info.value)
    assert message.startswith("error getting validators: error running GET request to [")
    assert f"[{BASE}/eth/v1/beacon/states/head/validators]" in message
    assert "?id" not in message


def test_event_stream_rejects_unsupported_topic():
    with make_provider(Recorder()) as provider:
        with pytest.raises(BeaconApiError, match="unsupported topic: block"):
            provider.beacon_event_stream(["head", "block"])


def test_event_stream_url():
    with make_provider(Recorder()) as provider:
        stream = provider.beacon_event_stream(["head"])
        try:
            assert stream.url == f"{BASE}{EVENT_STREAM_PATH}?topics=head"
        finally:
            stream.close()