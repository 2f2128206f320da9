"""Types for the publish stage.

The upsert endpoint answers in one of three shapes: nothing at all, a single
aggregate result object, or a list of per-item results. `decode_upsert_response`
in client.py turns that raw value into exactly one of the UpsertResponse
variants below, and `classify_response` maps the variant to a PublishOutcome.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class Session:
    """Authenticated session returned by the login exchange."""

    session_id: str
    server_url: str
    metadata_server_url: str
    user_id: str = ""
    organization_id: str = ""


@dataclass(frozen=True)
class UpsertItemResult:
    """Outcome of upserting one record, as reported by the remote."""

    full_name: str
    success: bool
    created: bool = False
    errors: tuple[dict, ...] = ()
    raw: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UpsertItemResult":
        errors = data.get("errors") or ()
        if isinstance(errors, Mapping):
            errors = (errors,)
        return cls(
            full_name=str(data.get("fullName") or ""),
            success=_as_bool(data.get("success")),
            created=_as_bool(data.get("created")),
            errors=tuple(dict(e) for e in errors if isinstance(e, Mapping)),
            raw=data,
        )

    def describe(self) -> str:
        messages = "; ".join(
            f"{e.get('statusCode', 'ERROR')}: {e.get('message', '')}" for e in self.errors
        )
        return f"{self.full_name or '<unnamed>'}: {messages or 'no error detail'}"


# ---------------------------------------------------------------------------
# Decoded response shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoResults:
    """The remote returned no result value."""


@dataclass(frozen=True)
class AggregateResult:
    """The remote returned one result object for the whole batch."""

    result: UpsertItemResult
    raw: Any = None


@dataclass(frozen=True)
class ItemResults:
    """The remote returned one result per submitted record."""

    items: tuple[UpsertItemResult, ...]


@dataclass(frozen=True)
class UnrecognisedResponse:
    """Any other shape. Treated as a failure."""

    raw: Any = None


UpsertResponse = Union[NoResults, AggregateResult, ItemResults, UnrecognisedResponse]


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PublishSuccess:
    """Every record was accepted."""

    items: tuple[UpsertItemResult, ...] = ()


@dataclass(frozen=True)
class PublishPartialFailure:
    """At least one record in a per-item response was rejected."""

    failed: tuple[UpsertItemResult, ...]


@dataclass(frozen=True)
class PublishFatal:
    """The batch failed as a whole (no results, aggregate failure, bad shape)."""

    reason: str
    detail: Any = None


PublishOutcome = Union[PublishSuccess, PublishPartialFailure, PublishFatal]


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False
