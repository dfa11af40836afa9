"""Response envelopes and status reports exchanged over the node API."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def _to_jsonable(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


class ResponseStatus(IntEnum):
    """Outcome of an API request."""

    UNKNOWN = 0
    SUCCESS = 1
    ERROR = 2
    INVALID_ARGUMENTS = 3
    ADDRESS_NOT_PRESENT = 4
    WALLET_NOT_READY = 5
    RESOURCE_CONFLICT = 6
    RESOURCE_NOT_FOUND = 7
    CLIENTS_NOT_SYNCED = 8
    INVALID_CHAIN_STATE = 9


@dataclass
class ApiResponse(Generic[T]):
    """The JSON envelope of every API response: optional data and optional error."""

    data: T | None = None
    error: str = ""

    def to_json(self) -> str:
        payload: dict[str, Any] = {}
        if self.data is not None:
            payload["data"] = _to_jsonable(self.data)
        if self.error:
            payload["error"] = self.error
        return json.dumps(payload)

    @classmethod
    def from_json(cls, text: str | bytes) -> ApiResponse[Any]:
        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            raise ValueError("API response must be a JSON object")
        error = parsed.get("error", "")
        if error is None:
            error = ""
        if not isinstance(error, str):
            raise ValueError("API response error must be a string")
        return cls(data=parsed.get("data"), error=error)


@dataclass
class DataBatch(Generic[T]):
    batch: list[T] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"batch": [_to_jsonable(item) for item in self.batch]}


@dataclass
class ClientStatus:
    """Status report of an execution client or beacon node."""

    is_working: bool = False
    is_synced: bool = False
    sync_progress: float = 0.0
    chain_id: int = 0
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "isWorking": self.is_working,
            "isSynced": self.is_synced,
            "syncProgress": self.sync_progress,
            "networkId": self.chain_id,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientStatus:
        return cls(
            is_working=bool(data.get("isWorking", False)),
            is_synced=bool(data.get("isSynced", False)),
            sync_progress=float(data.get("syncProgress", 0.0)),
            chain_id=int(data.get("networkId", 0)),
            error=data.get("error", "") or "",
        )


@dataclass
class ClientManagerStatus:
    """Status of a primary client and its optional fallback."""

    primary_client_status: ClientStatus = field(default_factory=ClientStatus)
    fallback_enabled: bool = False
    fallback_client_status: ClientStatus = field(default_factory=ClientStatus)

    def to_dict(self) -> dict[str, Any]:
        return {
            "primaryEcStatus": self.primary_client_status.to_dict(),
            "fallbackEnabled": self.fallback_enabled,
            "fallbackEcStatus": self.fallback_client_status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientManagerStatus:
        return cls(
            primary_client_status=ClientStatus.from_dict(data.get("primaryEcStatus") or {}),
            fallback_enabled=bool(data.get("fallbackEnabled", False)),
            fallback_client_status=ClientStatus.from_dict(data.get("fallbackEcStatus") or {}),
        )