"""Publish client — owns the authenticated session for one run.

State machine:
    UNAUTHENTICATED --authenticate()--> AUTHENTICATED

There is no way back. A failed authenticate leaves the client where it was
and raises AuthenticationError; nothing is retried. publish_all() before a
successful authenticate is a programming error and raises
NotAuthenticatedError without touching the transport.

Response handling is split in two pure steps so every shape is handled in
one place:
    decode_upsert_response(raw)  -> UpsertResponse  (what came back)
    classify_response(decoded)   -> PublishOutcome  (what it means)

A per-item response with any rejected record is a failure. Failed items are
logged individually before the aggregate PublishError is raised.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from sfpublish.core.config import SalesforceCredentials
from sfpublish.errors import AuthenticationError, NotAuthenticatedError, PublishError, TransportError
from sfpublish.packaging.types import Artifact
from sfpublish.publish.transport import MetadataTransport, SoapMetadataTransport
from sfpublish.publish.types import (
    AggregateResult,
    ItemResults,
    NoResults,
    PublishFatal,
    PublishOutcome,
    PublishPartialFailure,
    PublishSuccess,
    Session,
    UnrecognisedResponse,
    UpsertItemResult,
    UpsertResponse,
)

logger = logging.getLogger(__name__)

METADATA_TYPE = "StaticResource"

NO_RESULTS_MESSAGE = "Upload resources failed. (No results)"
WITH_ERRORS_MESSAGE = "Upload resources failed. (With errors)"


class ClientState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class PublishClient:
    """Authenticate once, then upsert a batch of artifacts."""

    def __init__(
        self,
        credentials: SalesforceCredentials,
        transport: Optional[MetadataTransport] = None,
    ):
        self.credentials = credentials
        self.transport = transport or SoapMetadataTransport(
            login_url=credentials.login_url,
            api_version=credentials.api_version,
        )
        self._session: Optional[Session] = None

    @property
    def state(self) -> ClientState:
        if self._session is None:
            return ClientState.UNAUTHENTICATED
        return ClientState.AUTHENTICATED

    @property
    def session(self) -> Optional[Session]:
        return self._session

    async def authenticate(self) -> Session:
        """Log in with username and password+token.

        Raises:
            AuthenticationError: the login exchange failed. The transport
                error is attached as `cause` and `__cause__`.
        """
        logger.info("Logging in to Salesforce.")
        try:
            session = await self.transport.login(
                self.credentials.username,
                self.credentials.secret,
            )
        except TransportError as exc:
            raise AuthenticationError(f"Login failed: {exc}", cause=exc) from exc

        self._session = session
        logger.info("Connected to Salesforce.")
        return session

    async def publish_all(self, artifacts: Sequence[Artifact]) -> PublishSuccess:
        """Upsert every artifact in one call.

        Returns PublishSuccess when every record was accepted.

        Raises:
            NotAuthenticatedError: authenticate() has not succeeded.
            PublishError: the call failed or any record was rejected.
        """
        if self._session is None:
            raise NotAuthenticatedError("publish_all() called before authenticate()")

        logger.info("Uploading resources.")
        try:
            raw = await self.transport.upsert(self._session, METADATA_TYPE, list(artifacts))
        except TransportError as exc:
            raise PublishError(f"Upload resources failed. ({exc})", detail=exc) from exc

        outcome = classify_response(decode_upsert_response(raw))
        return _raise_unless_success(outcome)


def decode_upsert_response(raw: Any) -> UpsertResponse:
    """Tag the raw upsert value with its shape."""
    if raw is None:
        return NoResults()
    if isinstance(raw, Mapping):
        return AggregateResult(result=UpsertItemResult.from_mapping(raw), raw=raw)
    if isinstance(raw, (list, tuple)):
        if not raw:
            return NoResults()
        if not all(isinstance(item, Mapping) for item in raw):
            return UnrecognisedResponse(raw=raw)
        return ItemResults(items=tuple(UpsertItemResult.from_mapping(item) for item in raw))
    return UnrecognisedResponse(raw=raw)


def classify_response(response: UpsertResponse) -> PublishOutcome:
    """Map a decoded response to an outcome. Logs each rejected item."""
    if isinstance(response, NoResults):
        return PublishFatal(reason=NO_RESULTS_MESSAGE)

    if isinstance(response, AggregateResult):
        if response.result.success:
            return PublishSuccess(items=(response.result,))
        return PublishFatal(reason=_aggregate_reason(response.result), detail=response.raw)

    if isinstance(response, ItemResults):
        failed = tuple(item for item in response.items if not item.success)
        for item in failed:
            logger.error("Upsert failed for %s", item.describe())
        if failed:
            return PublishPartialFailure(failed=failed)
        return PublishSuccess(items=response.items)

    if isinstance(response, UnrecognisedResponse):
        return PublishFatal(
            reason="Upload resources failed. (Unrecognised response)",
            detail=response.raw,
        )

    raise TypeError(f"Unhandled upsert response: {response!r}")


def _raise_unless_success(outcome: PublishOutcome) -> PublishSuccess:
    if isinstance(outcome, PublishSuccess):
        return outcome
    if isinstance(outcome, PublishPartialFailure):
        raise PublishError(WITH_ERRORS_MESSAGE, failed_items=outcome.failed)
    if isinstance(outcome, PublishFatal):
        raise PublishError(outcome.reason, detail=outcome.detail)
    raise TypeError(f"Unhandled publish outcome: {outcome!r}")


def _aggregate_reason(result: UpsertItemResult) -> str:
    if result.errors:
        return f"Upload resources failed. ({result.describe()})"
    return "Upload resources failed."
