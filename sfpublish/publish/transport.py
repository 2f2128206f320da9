"""Metadata transports.

`MetadataTransport` is the interface PublishClient talks to. It owns the
wire protocol; the client only decides what to send and how to read the
answer.

`SoapMetadataTransport` speaks the Salesforce SOAP APIs over httpx:

  login  — partner API `login` at <login_url>/services/Soap/u/<version>,
           returns sessionId plus the metadata server URL.
  upsert — metadata API `upsertMetadata` at the metadata server URL with a
           SessionHeader, one <metadata> element per artifact.

Upsert results are returned the way the remote client library shapes them:
no <result> elements → None, one → a dict, several → a list of dicts.

Neither call retries, and no timeout is imposed unless the caller passes one.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable
from xml.sax.saxutils import escape

import httpx

from sfpublish.errors import TransportError
from sfpublish.packaging.types import Artifact
from sfpublish.publish.types import Session

logger = logging.getLogger(__name__)

PARTNER_NS = "urn:partner.soap.sforce.com"
METADATA_NS = "http://soap.sforce.com/2006/04/metadata"
SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

# StaticResource.cacheControl is required by the metadata API
CACHE_CONTROL = "Private"

RawUpsertResponse = Union[None, dict, list]


@runtime_checkable
class MetadataTransport(Protocol):
    """Protocol for the remote login + upsert transport."""

    async def login(self, username: str, secret: str) -> Session:
        """Exchange credentials for a session.

        Raises:
            TransportError: the remote refused the login or was unreachable.
        """
        ...  # noqa: PLR6301

    async def upsert(
        self,
        session: Session,
        metadata_type: str,
        artifacts: Sequence[Artifact],
    ) -> RawUpsertResponse:
        """Create-or-update every artifact in one call.

        Returns the raw result value: None, one dict, or a list of dicts.

        Raises:
            TransportError: the call itself failed (fault, HTTP error).
        """
        ...  # noqa: PLR6301


class SoapMetadataTransport:
    """MetadataTransport over the Salesforce SOAP endpoints."""

    def __init__(
        self,
        login_url: str,
        api_version: str,
        timeout: Optional[float] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.login_url = login_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self._http_transport = http_transport

    @property
    def login_endpoint(self) -> str:
        return f"{self.login_url}/services/Soap/u/{self.api_version}"

    async def login(self, username: str, secret: str) -> Session:
        body = _login_envelope(username, secret)
        root = await self._post(self.login_endpoint, "login", body)

        result = _first(root, "result")
        if result is None:
            raise TransportError("Login response contained no result")

        session_id = _text(result, "sessionId")
        server_url = _text(result, "serverUrl")
        if not session_id or not server_url:
            raise TransportError("Login response is missing sessionId or serverUrl")

        metadata_url = _text(result, "metadataServerUrl") or _metadata_url_from(
            server_url, self.api_version
        )
        return Session(
            session_id=session_id,
            server_url=server_url,
            metadata_server_url=metadata_url,
            user_id=_text(result, "userId"),
            organization_id=_text(result, "organizationId"),
        )

    async def upsert(
        self,
        session: Session,
        metadata_type: str,
        artifacts: Sequence[Artifact],
    ) -> RawUpsertResponse:
        body = _upsert_envelope(session.session_id, metadata_type, artifacts)
        root = await self._post(session.metadata_server_url, "upsertMetadata", body)

        results = [_result_to_dict(el) for el in _find_all(root, "result")]
        if not results:
            return None
        if len(results) == 1:
            return results[0]
        return results

    async def _post(self, url: str, action: str, body: str) -> ET.Element:
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": action,
        }
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._http_transport,
            ) as client:
                response = await client.post(url, content=body.encode("utf-8"), headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"{action} request failed: {exc}") from exc

        root = _parse(response)
        fault = _first(root, "Fault") if root is not None else None
        if fault is not None:
            fault_code = _text(fault, "faultcode")
            fault_string = _text(fault, "faultstring") or fault_code or "SOAP fault"
            raise TransportError(fault_string, response.status_code, fault_code or None)

        if response.status_code >= 400:
            raise TransportError(
                f"{action} failed with HTTP {response.status_code}",
                response.status_code,
            )
        if root is None:
            raise TransportError(f"{action} returned a response that is not XML")

        logger.debug("%s answered HTTP %d", action, response.status_code)
        return root


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


def _login_envelope(username: str, secret: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<env:Envelope xmlns:env="{SOAP_ENV_NS}">'
        "<env:Body>"
        f'<n1:login xmlns:n1="{PARTNER_NS}">'
        f"<n1:username>{escape(username)}</n1:username>"
        f"<n1:password>{escape(secret)}</n1:password>"
        "</n1:login>"
        "</env:Body>"
        "</env:Envelope>"
    )


def _upsert_envelope(session_id: str, metadata_type: str, artifacts: Sequence[Artifact]) -> str:
    records = "".join(
        f'<metadata xsi:type="{escape(metadata_type)}">'
        f"<fullName>{escape(a.full_name)}</fullName>"
        f"<cacheControl>{CACHE_CONTROL}</cacheControl>"
        f"<content>{a.content}</content>"
        f"<contentType>{escape(a.content_type)}</contentType>"
        "</metadata>"
        for a in artifacts
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<env:Envelope xmlns:env="{SOAP_ENV_NS}" xmlns:xsi="{XSI_NS}">'
        "<env:Header>"
        f'<SessionHeader xmlns="{METADATA_NS}">'
        f"<sessionId>{escape(session_id)}</sessionId>"
        "</SessionHeader>"
        "</env:Header>"
        "<env:Body>"
        f'<upsertMetadata xmlns="{METADATA_NS}">{records}</upsertMetadata>'
        "</env:Body>"
        "</env:Envelope>"
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _parse(response: httpx.Response) -> Optional[ET.Element]:
    if not response.content:
        return None
    try:
        return ET.fromstring(response.content)
    except ET.ParseError:
        return None


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find_all(root: ET.Element, name: str) -> list[ET.Element]:
    return [el for el in root.iter() if _local(el.tag) == name]


def _first(root: ET.Element, name: str) -> Optional[ET.Element]:
    for el in root.iter():
        if _local(el.tag) == name:
            return el
    return None


def _text(root: ET.Element, name: str) -> str:
    el = _first(root, name)
    if el is None or el.text is None:
        return ""
    return el.text.strip()


def _result_to_dict(result: ET.Element) -> dict[str, Any]:
    """Convert one <result> element into the dict shape the client reads."""
    data: dict[str, Any] = {}
    errors: list[dict[str, Any]] = []
    for child in result:
        name = _local(child.tag)
        if name == "errors":
            errors.append(_error_to_dict(child))
        elif name in ("success", "created"):
            data[name] = (child.text or "").strip().lower() == "true"
        else:
            data[name] = (child.text or "").strip()
    if errors:
        data["errors"] = errors
    return data


def _error_to_dict(error: ET.Element) -> dict[str, Any]:
    data: dict[str, Any] = {}
    fields: list[str] = []
    for child in error:
        name = _local(child.tag)
        text = (child.text or "").strip()
        if name == "fields":
            fields.append(text)
        else:
            data[name] = text
    if fields:
        data["fields"] = fields
    return data


def _metadata_url_from(server_url: str, api_version: str) -> str:
    """Derive the metadata endpoint from the partner server URL."""
    if "/services/Soap/u/" in server_url:
        return server_url.replace("/services/Soap/u/", "/services/Soap/m/", 1)
    return f"{server_url.rstrip('/')}/services/Soap/m/{api_version}"
