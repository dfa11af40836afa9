"""HTTP client helpers for talking to the node's API server."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol
from urllib.parse import urlencode

import httpx

from nodecore.api.types import ApiResponse
from nodecore.beacon.keys import ValidatorPubkey

JSON_CONTENT_TYPE = "application/json"

_ADDRESS_LENGTH = 20
_UINT64_LIMIT = 1 << 64
_MASK64 = _UINT64_LIMIT - 1
_KECCAK_RATE = 136

_log = logging.getLogger(__name__)


class ApiClientError(Exception):
    """Raised when a request to the API server fails."""


class _RequesterContext(Protocol):
    logger: logging.Logger

    @property
    def address_base(self) -> str: ...

    def send_request(self, request: httpx.Request) -> httpx.Response: ...


@dataclass
class Requester:
    """Sends requests to one subroute of the API server."""

    name: str
    route: str
    context: Any


class _HttpRequesterContext:
    """Shared plumbing for the HTTP requester contexts."""

    def __init__(
        self,
        logger: logging.Logger | None,
        transport: httpx.BaseTransport | None,
        event_hooks: Mapping[str, list] | None = None,
    ) -> None:
        self.logger = logger or _log
        self._client = httpx.Client(
            transport=transport,
            event_hooks=dict(event_hooks) if event_hooks else None,
            timeout=None,
        )

    def close(self) -> None:
        """Release the underlying HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class NetworkRequesterContext(_HttpRequesterContext):
    """Requester context that talks to the server over TCP."""

    def __init__(
        self,
        api_url: str,
        logger: logging.Logger | None = None,
        event_hooks: Mapping[str, list] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(logger, transport, event_hooks)
        self.api_url = api_url

    @property
    def address_base(self) -> str:
        return self.api_url

    def send_request(self, request: httpx.Request) -> httpx.Response:
        """Send an HTTP request to the server."""
        return self._client.send(request)

    def close(self) -> None:
        """Release the underlying HTTP client."""
        super().close()


class UnixRequesterContext(_HttpRequesterContext):
    """Requester context that talks to the server over a Unix socket."""

    def __init__(
        self,
        base_route: str,
        socket_path: str,
        logger: logging.Logger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(logger, transport or httpx.HTTPTransport(uds=socket_path))
        self.base_route = base_route
        self.socket_path = socket_path

    @property
    def address_base(self) -> str:
        return f"http://{self.base_route}"

    def send_request(self, request: httpx.Request) -> httpx.Response:
        """Send an HTTP request to the server, checking the socket exists first."""
        if not os.path.exists(self.socket_path):
            raise ApiClientError(
                f"the socket at [{self.socket_path}] does not exist - "
                "please start the service and try again"
            )
        return self._client.send(request)

    def close(self) -> None:
        """Release the underlying HTTP client."""
        super().close()


def send_get_request(
    requester: Requester, method: str, request_name: str, args: Mapping[str, str] | None
) -> ApiResponse[Any]:
    """Submit a GET request to a method on the requester's route."""
    try:
        return raw_get_request(requester.context, f"{requester.route}/{method}", args or {})
    except ApiClientError as exc:
        raise ApiClientError(
            f"error during {requester.name} {request_name} request: {exc}"
        ) from exc


def raw_get_request(
    context: _RequesterContext, path: str, params: Mapping[str, str] | None
) -> ApiResponse[Any]:
    """Submit a GET request to a path below the context's address base."""
    url = f"{context.address_base}/{path}"
    query = urlencode(sorted((params or {}).items()))
    if query:
        url = f"{url}?{query}"
    try:
        request = httpx.Request("GET", url)
    except httpx.InvalidURL as exc:
        raise ApiClientError(f"error creating HTTP request: {exc}") from exc
    context.logger.debug("API Request: method=GET query=%s", url)
    return _send(context, request, path)


def send_post_request(
    requester: Requester, method: str, request_name: str, body: Any
) -> ApiResponse[Any]:
    """Submit a POST request with a JSON body to a method on the requester's route."""
    try:
        text = json.dumps(body, default=_json_default)
    except (TypeError, ValueError) as exc:
        raise ApiClientError(
            f"error serializing request body for {requester.name} {request_name}: {exc}"
        ) from exc
    try:
        return raw_post_request(requester.context, f"{requester.route}/{method}", text)
    except ApiClientError as exc:
        raise ApiClientError(
            f"error during {requester.name} {request_name} request: {exc}"
        ) from exc


def raw_post_request(context: _RequesterContext, path: str, body: str) -> ApiResponse[Any]:
    """Submit a POST request with an already serialized JSON body."""
    try:
        request = httpx.Request(
            "POST",
            f"{context.address_base}/{path}",
            content=body.encode("utf-8"),
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )
    except httpx.InvalidURL as exc:
        raise ApiClientError(f"error creating HTTP request: {exc}") from exc
    context.logger.debug("API Request: method=POST path=%s body=%s", path, body)
    return _send(context, request, path)


def handle_response(
    context: _RequesterContext, response: httpx.Response, path: str
) -> ApiResponse[Any]:
    """Turn a server response into an ApiResponse, raising on failure."""
    logger = context.logger
    try:
        body = response.read()
    except (httpx.HTTPError, httpx.StreamError) as exc:
        raise ApiClientError(f"error reading the response body for {path}: {exc}") from exc
    finally:
        response.close()
    status_text = f"{response.status_code} {response.reason_phrase}"
    text = body.decode("utf-8", errors="replace")

    if response.status_code == httpx.codes.NOT_FOUND:
        logger.debug("API Response (raw): code=%s body=%s", status_text, text)
        raise ApiClientError(f"route '{path}' not found")

    try:
        parsed = ApiResponse.from_json(body)
    except ValueError as exc:
        logger.debug("API Response (raw): code=%s body=%s", status_text, text)
        raise ApiClientError(f"error deserializing response to {path}: {exc}") from exc

    if response.status_code != httpx.codes.OK:
        logger.debug("API Response: path=%s code=%s err=%s", path, status_text, parsed.error)
        raise ApiClientError(parsed.error)

    logger.debug("API Response: body=%s", text)
    return parsed


def make_batch_arg(items: Iterable[Any]) -> str:
    """Join indices, addresses or validator pubkeys into a comma-separated argument."""
    return ",".join(_batch_item(item) for item in items)


def _send(context: _RequesterContext, request: httpx.Request, path: str) -> ApiResponse[Any]:
    try:
        response = context.send_request(request)
    except (httpx.HTTPError, ApiClientError, OSError) as exc:
        raise ApiClientError(f"error requesting {path}: {exc}") from exc
    return handle_response(context, response, path)


def _json_default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def _batch_item(item: Any) -> str:
    if isinstance(item, ValidatorPubkey):
        return item.hex_with_prefix()
    if isinstance(item, bool):
        raise TypeError("booleans cannot be batched")
    if isinstance(item, int):
        if not 0 <= item < _UINT64_LIMIT:
            raise ValueError(f"value {item} does not fit in a uint64")
        return str(item)
    if isinstance(item, (bytes, bytearray)) and len(item) == _ADDRESS_LENGTH:
        return _checksum_address(bytes(item))
    raise TypeError(f"cannot batch a value of type {type(item).__name__}")


def _checksum_address(address: bytes) -> str:
    """Mixed-case checksummed hex form of an address (EIP-55)."""
    lower = address.hex()
    digest = _keccak256(lower.encode("ascii")).hex()
    mixed = "".join(
        char.upper() if char.isalpha() and int(nibble, 16) >= 8 else char
        for char, nibble in zip(lower, digest)
    )
    return "0x" + mixed


def _rotl64(value: int, shift: int) -> int:
    shift %= 64
    return ((value << shift) | (value >> (64 - shift))) & _MASK64


def _keccak_f1600(lanes: list[list[int]]) -> list[list[int]]:
    state = 1
    for _ in range(24):
        parity = [lanes[x][0] ^ lanes[x][1] ^ lanes[x][2] ^ lanes[x][3] ^ lanes[x][4] for x in range(5)]
        mix = [parity[(x + 4) % 5] ^ _rotl64(parity[(x + 1) % 5], 1) for x in range(5)]
        lanes = [[lanes[x][y] ^ mix[x] for y in range(5)] for x in range(5)]
        x, y = 1, 0
        current = lanes[x][y]
        for step in range(24):
            x, y = y, (2 * x + 3 * y) % 5
            current, lanes[x][y] = lanes[x][y], _rotl64(current, (step + 1) * (step + 2) // 2)
        for y in range(5):
            row = [lanes[x][y] for x in range(5)]
            for x in range(5):
                lanes[x][y] = row[x] ^ ((~row[(x + 1) % 5]) & row[(x + 2) % 5])
        for bit in range(7):
            state = ((state << 1) ^ ((state >> 7) * 0x71)) % 256
            if state & 2:
                lanes[0][0] ^= 1 << ((1 << bit) - 1)
    return lanes


def _keccak256(data: bytes) -> bytes:
    padded = bytearray(data)
    padded.append(0x01)
    padded.extend(bytes(-len(padded) % _KECCAK_RATE))
    padded[-1] |= 0x80
    lanes = [[0] * 5 for _ in range(5)]
    for start in range(0, len(padded), _KECCAK_RATE):
        block = padded[start:start + _KECCAK_RATE]
        for lane in range(_KECCAK_RATE // 8):
            lanes[lane % 5][lane // 5] ^= int.from_bytes(block[8 * lane:8 * lane + 8], "little")
        lanes = _keccak_f1600(lanes)
    return b"".join(lanes[lane % 5][lane // 5].to_bytes(8, "little") for lane in range(4))