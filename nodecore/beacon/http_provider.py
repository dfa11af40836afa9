"""Beacon node access over the standard REST API."""

from __future__ import annotations

import json
from typing import Any, Callable, Iterable, TypeVar

import httpx

from nodecore.beacon.events import EventStream
from nodecore.beacon.responses import (
    AttestationsResponse,
    BeaconBlockHeaderResponse,
    BeaconBlockResponse,
    BLSToExecutionChangeRequest,
    CommitteesResponse,
    Eth2ConfigResponse,
    Eth2DepositContractResponse,
    FinalityCheckpointsResponse,
    GenesisResponse,
    ProposerDutiesResponse,
    SyncDutiesResponse,
    SyncStatusResponse,
    ValidatorsResponse,
    VoluntaryExitRequest,
)

REQUEST_CONTENT_TYPE = "application/json"

REQUEST_SYNC_STATUS_PATH = "/eth/v1/node/syncing"
REQUEST_ETH2_CONFIG_PATH = "/eth/v1/config/spec"
REQUEST_ETH2_DEPOSIT_CONTRACT_PATH = "/eth/v1/config/deposit_contract"
REQUEST_COMMITTEE_PATH = "/eth/v1/beacon/states/{}/committees"
REQUEST_GENESIS_PATH = "/eth/v1/beacon/genesis"
REQUEST_FINALITY_CHECKPOINTS_PATH = "/eth/v1/beacon/states/{}/finality_checkpoints"
REQUEST_FORK_PATH = "/eth/v1/beacon/states/{}/fork"
REQUEST_VALIDATORS_PATH = "/eth/v1/beacon/states/{}/validators"
REQUEST_VOLUNTARY_EXIT_PATH = "/eth/v1/beacon/pool/voluntary_exits"
REQUEST_ATTESTATIONS_PATH = "/eth/v1/beacon/blocks/{}/attestations"
REQUEST_BEACON_BLOCK_PATH = "/eth/v2/beacon/blocks/{}"
REQUEST_BEACON_BLOCK_HEADER_PATH = "/eth/v1/beacon/headers/{}"
REQUEST_VALIDATOR_SYNC_DUTIES_PATH = "/eth/v1/validator/duties/sync/{}"
REQUEST_VALIDATOR_PROPOSER_DUTIES_PATH = "/eth/v1/validator/duties/proposer/{}"
REQUEST_WITHDRAWAL_CREDENTIALS_CHANGE_PATH = "/eth/v1/beacon/pool/bls_to_execution_changes"
EVENT_STREAM_PATH = "/eth/v1/events"

MAX_REQUEST_VALIDATORS_COUNT = 600

_SUPPORTED_TOPICS = frozenset({"head"})

R = TypeVar("R")


class BeaconApiError(Exception):
    """Raised when a beacon node request fails or returns an unusable response."""


class BeaconHttpProvider:
    """Issues the standard beacon API calls against one beacon node.

    Calls that may legitimately find nothing (attestations, blocks, headers)
    return None when the node answers 404.
    """

    def __init__(
        self,
        provider_address: str,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.provider_address = provider_address
        self._client = httpx.Client(transport=transport, timeout=timeout)
        # Large responses (validators, committees) are fetched without a timeout.
        self._unbounded_client = httpx.Client(transport=transport, timeout=None)

    def __enter__(self) -> BeaconHttpProvider:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Release the HTTP clients."""
        self._client.close()
        self._unbounded_client.close()

    # ----- GET routes -----

    def beacon_attestations(self, block_id: str) -> AttestationsResponse | None:
        context = f"error getting attestations data for slot {block_id}"
        return self._get_parsed(
            REQUEST_ATTESTATIONS_PATH.format(block_id),
            context,
            f"error decoding attestations data for slot {block_id}",
            AttestationsResponse.from_dict,
            allow_missing=True,
        )

    def beacon_block(self, block_id: str) -> BeaconBlockResponse | None:
        return self._get_parsed(
            REQUEST_BEACON_BLOCK_PATH.format(block_id),
            "error getting beacon block data",
            "error decoding beacon block data",
            BeaconBlockResponse.from_dict,
            allow_missing=True,
        )

    def beacon_header(self, block_id: str) -> BeaconBlockHeaderResponse | None:
        return self._get_parsed(
            REQUEST_BEACON_BLOCK_HEADER_PATH.format(block_id),
            "error getting beacon block header data",
            "error getting beacon block header data",
            BeaconBlockHeaderResponse.from_dict,
            allow_missing=True,
        )

    def beacon_committees(self, state_id: str, epoch: int | None) -> CommitteesResponse:
        query = "" if epoch is None else f"?epoch={epoch}"
        return self._get_parsed(
            REQUEST_COMMITTEE_PATH.format(state_id) + query,
            "error getting committees",
            "error decoding committees",
            CommitteesResponse.from_dict,
            client=self._unbounded_client,
        )

    def beacon_finality_checkpoints(self, state_id: str) -> FinalityCheckpointsResponse:
        return self._get_parsed(
            REQUEST_FINALITY_CHECKPOINTS_PATH.format(state_id),
            "error getting finality checkpoints",
            "error decoding finality checkpoints",
            FinalityCheckpointsResponse.from_dict,
        )

    def beacon_genesis(self) -> GenesisResponse:
        return self._get_parsed(
            REQUEST_GENESIS_PATH,
            "error getting genesis data",
            "error decoding genesis",
            GenesisResponse.from_dict,
        )

    def beacon_validators(self, state_id: str, ids: Iterable[str]) -> ValidatorsResponse:
        ids = list(ids)
        query = f"?id={','.join(ids)}" if ids else ""
        return self._get_parsed(
            REQUEST_VALIDATORS_PATH.format(state_id) + query,
            "error getting validators",
            "error decoding validators",
            ValidatorsResponse.from_dict,
            client=self._unbounded_client,
        )

    def config_deposit_contract(self) -> Eth2DepositContractResponse:
        return self._get_parsed(
            REQUEST_ETH2_DEPOSIT_CONTRACT_PATH,
            "error getting eth2 deposit contract",
            "error decoding eth2 deposit contract",
            Eth2DepositContractResponse.from_dict,
        )

    def config_spec(self) -> Eth2ConfigResponse:
        return self._get_parsed(
            REQUEST_ETH2_CONFIG_PATH,
            "error getting eth2 config",
            "error decoding eth2 config",
            Eth2ConfigResponse.from_dict,
        )

    def node_syncing(self) -> SyncStatusResponse:
        return self._get_parsed(
            REQUEST_SYNC_STATUS_PATH,
            "error getting node sync status",
            "error decoding node sync status",
            SyncStatusResponse.from_dict,
        )

    def validator_duties_proposer(
        self, indices: Iterable[str], epoch: int
    ) -> ProposerDutiesResponse:
        """Proposer duties for the whole epoch; the node is not filtered by indices."""
        return self._get_parsed(
            REQUEST_VALIDATOR_PROPOSER_DUTIES_PATH.format(epoch),
            "error getting validator proposer duties",
            "error decoding validator proposer duties data",
            ProposerDutiesResponse.from_dict,
        )

    # ----- POST routes -----

    def validator_duties_sync_post(
        self, indices: Iterable[str], epoch: int
    ) -> SyncDutiesResponse:
        context = "error getting validator sync duties"
        body = self._post_checked(
            REQUEST_VALIDATOR_SYNC_DUTIES_PATH.format(epoch), list(indices), context
        )
        return self._decode(body, "error decoding validator sync duties data", SyncDutiesResponse.from_dict)

    def beacon_voluntary_exits_post(self, request: VoluntaryExitRequest) -> None:
        context = f"error broadcasting exit for validator at index {request.validator_index}"
        self._post_checked(REQUEST_VOLUNTARY_EXIT_PATH, request.to_dict(), context)

    def beacon_bls_to_execution_changes_post(self, request: BLSToExecutionChangeRequest) -> None:
        context = (
            "error broadcasting withdrawal credentials change for validator "
            f"{request.validator_index}"
        )
        # This route takes an array of changes.
        self._post_checked(
            REQUEST_WITHDRAWAL_CREDENTIALS_CHANGE_PATH, [request.to_dict()], context
        )

    # ----- events -----

    def beacon_event_stream(self, topics: Iterable[str]) -> EventStream:
        """Start polling the node's event stream for the given topics."""
        topics = list(topics)
        for topic in topics:
            if topic not in _SUPPORTED_TOPICS:
                raise BeaconApiError(f"unsupported topic: {topic}")
        url = f"{self.provider_address}{EVENT_STREAM_PATH}?topics={','.join(topics)}"
        return EventStream(url)

    # ----- internals -----

    def _get_parsed(
        self,
        path: str,
        context: str,
        decode_context: str,
        parse: Callable[[Any], R],
        *,
        client: httpx.Client | None = None,
        allow_missing: bool = False,
    ) -> R | None:
        try:
            body, status = self._get(path, client or self._client)
        except BeaconApiError as exc:
            raise BeaconApiError(f"{context}: {exc}") from exc
        if allow_missing and status == httpx.codes.NOT_FOUND:
            return None
        if status != httpx.codes.OK:
            raise BeaconApiError(
                f"{context}: HTTP status {status}; response body: '{_text(body)}'"
            )
        return self._decode(body, decode_context, parse)

    @staticmethod
    def _decode(body: bytes, context: str, parse: Callable[[Any], R]) -> R:
        try:
            return parse(json.loads(body))
        except ValueError as exc:
            raise BeaconApiError(f"{context}: {exc}") from exc

    def _get(self, path: str, client: httpx.Client) -> tuple[bytes, int]:
        url = self.provider_address + path
        try:
            request = client.build_request(
                "GET", url, headers={"Content-Type": REQUEST_CONTENT_TYPE}
            )
        except httpx.InvalidURL as exc:
            raise BeaconApiError(f"error creating GET request to [{url}]: {exc}") from exc
        try:
            response = client.send(request)
        except httpx.HTTPError as exc:
            trimmed = url.partition("?")[0]
            raise BeaconApiError(f"error running GET request to [{trimmed}]: {exc}") from exc
        return response.content, response.status_code

    def _post_checked(self, path: str, payload: Any, context: str) -> bytes:
        try:
            body, status = self._post(path, payload)
        except BeaconApiError as exc:
            raise BeaconApiError(f"{context}: {exc}") from exc
        if status != httpx.codes.OK:
            raise BeaconApiError(
                f"{context}: HTTP status {status}; response body: '{_text(body)}'"
            )
        return body

    def _post(self, path: str, payload: Any) -> tuple[bytes, int]:
        try:
            content = json.dumps(payload).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise BeaconApiError(str(exc)) from exc
        url = self.provider_address + path
        try:
            request = self._client.build_request(
                "POST", url, content=content, headers={"Content-Type": REQUEST_CONTENT_TYPE}
            )
        except httpx.InvalidURL as exc:
            raise BeaconApiError(f"error creating POST request to [{url}]: {exc}") from exc
        try:
            response = self._client.send(request)
        except httpx.HTTPError as exc:
            raise BeaconApiError(f"error running POST request to [{url}]: {exc}") from exc
        return response.content, response.status_code


def _text(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")