"""Publish stage: login and batch upsert.

Public API:
    PublishClient(credentials, transport).authenticate()
    PublishClient(...).publish_all(artifacts) -> PublishSuccess
"""

from sfpublish.publish.client import PublishClient, classify_response, decode_upsert_response
from sfpublish.publish.transport import MetadataTransport, SoapMetadataTransport
from sfpublish.publish.types import PublishOutcome, PublishSuccess, Session

__all__ = [
    "MetadataTransport",
    "PublishClient",
    "PublishOutcome",
    "PublishSuccess",
    "Session",
    "SoapMetadataTransport",
    "classify_response",
    "decode_upsert_response",
]
