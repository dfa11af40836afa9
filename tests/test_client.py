import json
from dataclasses import dataclass

import httpx
import pytest

from nodecore.api.client import (
    ApiClientError,
    NetworkRequesterContext,
    Requester,
    UnixRequesterContext,
    handle_response,
    make_batch_arg,
    raw_get_request,
    raw_post_request,
    send_get_request,
    send_post_request,
)
from nodecore.beacon.keys import ValidatorPubkey

BASE = "http://node.example.com/api/v1"


def _requester(handler):
    context = NetworkRequesterContext(BASE, transport=httpx.MockTransport(handler))
    return Requester("Node", "node", context), context


class _Recorder:
    def __init__(self, status=200, payload=None, content=None):
        self.status = status
        self.payload = {"data": {"value": 7}} if payload is None else payload
        self.content = content
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status, content=self.content)
        return httpx.Response(self.status, json=self.payload)


def test_get_request_builds_url_and_sorted_query():
    recorder = _Recorder()
    requester, _ = _requester(recorder)
    response = send_get_request(requester, "status", "status", {"b": "2", "a": "1"})
    assert response.data == {"value": 7}
    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/api/v1/node/status"
    assert str(request.url).endswith("?a=1&b=2")


def test_get_request_without_args_has_no_query():
    recorder = _Recorder()
    requester, _ = _requester(recorder)
    send_get_request(requester, "status", "status", None)
    assert recorder.requests[0].url.query == b""


def test_not_found_is_reported_with_route():
    recorder = _Recorder(status=404, content=b"404 page not found")
    requester, _ = _requester(recorder)
    with pytest.raises(ApiClientError) as info:
        send_get_request(requester, "missing", "lookup", {})
    assert "route 'node/missing' not found" in str(info.value)
    assert str(info.value).startswith("error during Node lookup request")


def test_failed_status_raises_server_error_message():
    recorder = _Recorder(status=500, payload={"error": "wallet is locked"})
    requester, _ = _requester(recorder)
    with pytest.raises(ApiClientError) as info:
        send_get_request(requester, "status", "status", {})
    assert str(info.value).endswith("wallet is locked")


def test_invalid_json_body_is_a_deserialization_error():
    recorder = _Recorder(content=b"not json")
    requester, _ = _requester(recorder)
    with pytest.raises(ApiClientError, match="error deserializing response to node/status"):
        send_get_request(requester, "status", "status", {})


def test_transport_failure_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    requester, _ = _requester(handler)
    with pytest.raises(ApiClientError, match="error requesting node/status"):
        send_get_request(requester, "status", "status", {})


def test_post_request_sends_json_body():
    recorder = _Recorder(payload={"data": {"ok": True}})
    requester, _ = _requester(recorder)
    body = {"indices": [1, 2], "name": "n"}
    response = send_post_request(requester, "submit", "submit", body)
    assert response.data == {"ok": True}
    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == body


@dataclass
class _Body:
    epoch: int
    label: str


def test_post_request_serializes_dataclasses():
    recorder = _Recorder()
    requester, _ = _requester(recorder)
    send_post_request(requester, "submit", "submit", _Body(epoch=3, label="x"))
    assert json.loads(recorder.requests[0].content) == {"epoch": 3, "label": "x"}


def test_post_request_rejects_unserializable_body():
    requester, _ = _requester(_Recorder())
    with pytest.raises(ApiClientError, match="error serializing request body for Node submit"):
        send_post_request(requester, "submit", "submit", {"bad": object()})


def test_raw_requests_use_context_address_base():
    recorder = _Recorder()
    context = NetworkRequesterContext(BASE, transport=httpx.MockTransport(recorder))
    raw_get_request(context, "a/b", {"x": "y z"})
    raw_post_request(context, "c/d", "{}")
    assert str(recorder.requests[0].url) == f"{BASE}/a/b?x=y+z"
    assert str(recorder.requests[1].url) == f"{BASE}/c/d"
    assert recorder.requests[1].content == b"{}"


def test_handle_response_returns_parsed_envelope():
    context = NetworkRequesterContext(BASE)
    response = httpx.Response(200, json={"data": [1, 2, 3]})
    parsed = handle_response(context, response, "x")
    assert parsed.data == [1, 2, 3]
    assert parsed.error == ""


def test_unix_context_requires_socket(tmp_path):
    socket_path = tmp_path / "missing.sock"
    context = UnixRequesterContext("rp", str(socket_path))
    requester = Requester("Node", "node", context)
    with pytest.raises(ApiClientError, match="does not exist"):
        send_get_request(requester, "status", "status", {})


def test_unix_context_sends_to_base_route(tmp_path):
    socket_path = tmp_path / "api.sock"
    socket_path.write_text("")
    recorder = _Recorder()
    context = UnixRequesterContext("rp", str(socket_path), transport=httpx.MockTransport(recorder))
    assert context.address_base == "http://rp"
    send_get_request(Requester("Node", "node", context), "status", "status", {})
    assert recorder.requests[0].url.host == "rp"
    assert recorder.requests[0].url.path == "/node/status"


def test_make_batch_arg_indices():
    assert make_batch_arg([5, 17, 0]) == "5,17,0"


def test_make_batch_arg_pubkeys():
    first = ValidatorPubkey(bytes(range(48)))
    second = ValidatorPubkey(bytes([0xAB]) * 48)
    assert make_batch_arg([first, second]) == f"{first.hex_with_prefix()},{second.hex_with_prefix()}"


def test_make_batch_arg_addresses_are_checksummed():
    address = bytes.fromhex("5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
    assert make_batch_arg([address]) == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def test_make_batch_arg_checksum_keeps_hex_value():
    address = bytes(range(20))
    result = make_batch_arg([address])
    assert result.lower() == "0x" + address.hex()


def test_make_batch_arg_empty():
    assert make_batch_arg([]) == ""


def test_make_batch_arg_rejects_other_types():
    with pytest.raises(TypeError):
        make_batch_arg(["abc"])
    with pytest.raises(ValueError):
        make_batch_arg([-1])