"""Wire-level tests for the SOAP metadata transport.

Requests are answered by httpx.MockTransport; nothing leaves the process.
"""

import xml.etree.ElementTree as ET

import httpx
import pytest

from sfpublish.errors import TransportError
from sfpublish.packaging.types import Artifact
from sfpublish.publish.transport import MetadataTransport, SoapMetadataTransport
from sfpublish.publish.types import Session

LOGIN_OK = """<?xml version="1.0" encoding="UTF-8"?>
<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/"
    xmlns="urn:partner.soap.sforce.com">
  <soapenv:Body>
    <loginResponse>
      <result>
        <metadataServerUrl>https://na1.salesforce.com/services/Soap/m/59.0/00Dxx</metadataServerUrl>
        <passwordExpired>false</passwordExpired>
        <serverUrl>https://na1.salesforce.com/services/Soap/u/59.0/00Dxx</serverUrl>
        <sessionId>00Dxx!SESSION</sessionId>
        <userId>005xx</userId>
        <userInfo><organizationId>00Dxx</organizationId></userInfo>
      </result>
    </loginResponse>
  </soapenv:Body>
</soapenv:Envelope>"""

LOGIN_FAULT = """<?xml version="1.0" encoding="UTF-8"?>
<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/"
    xmlns:sf="urn:fault.partner.soap.sforce.com">
  <soapenv:Body>
    <soapenv:Fault>
      <faultcode>sf:INVALID_LOGIN</faultcode>
      <faultstring>INVALID_LOGIN: Invalid username, password, security token; or user locked out.</faultstring>
    </soapenv:Fault>
  </soapenv:Body>
</soapenv:Envelope>"""


def _upsert_response(*results: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/" '
        'xmlns="http://soap.sforce.com/2006/04/metadata">'
        "<soapenv:Body><upsertMetadataResponse>"
        f"{''.join(results)}"
        "</upsertMetadataResponse></soapenv:Body></soapenv:Envelope>"
    )


OK_RESULT = "<result><created>true</created><fullName>styles</fullName><success>true</success></result>"
FAILED_RESULT = (
    "<result><errors><fields>content</fields><message>Invalid zip</message>"
    "<statusCode>INVALID_FIELD</statusCode></errors>"
    "<fullName>scripts</fullName><success>false</success></result>"
)

SESSION = Session(
    session_id="00Dxx!SESSION",
    server_url="https://na1.salesforce.com/services/Soap/u/59.0/00Dxx",
    metadata_server_url="https://na1.salesforce.com/services/Soap/m/59.0/00Dxx",
)


def _transport(handler) -> SoapMetadataTransport:
    return SoapMetadataTransport(
        login_url="https://login.salesforce.com",
        api_version="59.0",
        http_transport=httpx.MockTransport(handler),
    )


class TestLogin:
    async def test_parses_session(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text=LOGIN_OK)

        session = await _transport(handler).login("dev@example.com", "pw&<token>")

        assert session.session_id == "00Dxx!SESSION"
        assert session.metadata_server_url.endswith("/services/Soap/m/59.0/00Dxx")
        assert session.user_id == "005xx"
        assert session.organization_id == "00Dxx"

        request = requests[0]
        assert str(request.url) == "https://login.salesforce.com/services/Soap/u/59.0"
        assert request.headers["SOAPAction"] == "login"
        body = ET.fromstring(request.content)
        ns = {"p": "urn:partner.soap.sforce.com"}
        assert body.find(".//p:username", ns).text == "dev@example.com"
        assert body.find(".//p:password", ns).text == "pw&<token>"

    async def test_fault_raises_transport_error(self):
        transport = _transport(lambda request: httpx.Response(500, text=LOGIN_FAULT))

        with pytest.raises(TransportError) as excinfo:
            await transport.login("dev@example.com", "wrong")

        assert excinfo.value.status_code == 500
        assert excinfo.value.fault_code == "sf:INVALID_LOGIN"
        assert "INVALID_LOGIN" in str(excinfo.value)

    async def test_http_error_without_fault(self):
        transport = _transport(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(TransportError, match="HTTP 503"):
            await transport.login("u", "p")

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(TransportError, match="Connection refused"):
            await _transport(handler).login("u", "p")

    async def test_missing_session_id(self):
        body = LOGIN_OK.replace("<sessionId>00Dxx!SESSION</sessionId>", "")
        transport = _transport(lambda request: httpx.Response(200, text=body))

        with pytest.raises(TransportError, match="sessionId"):
            await transport.login("u", "p")

    async def test_derives_metadata_url_when_absent(self):
        body = LOGIN_OK.replace(
            "<metadataServerUrl>https://na1.salesforce.com/services/Soap/m/59.0/00Dxx</metadataServerUrl>",
            "",
        )
        transport = _transport(lambda request: httpx.Response(200, text=body))

        session = await transport.login("u", "p")

        assert session.metadata_server_url == "https://na1.salesforce.com/services/Soap/m/59.0/00Dxx"


class TestUpsert:
    async def test_request_envelope(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text=_upsert_response(OK_RESULT))

        artifacts = [Artifact(full_name="styles", content="UEsDBA==")]
        await _transport(handler).upsert(SESSION, "StaticResource", artifacts)

        request = requests[0]
        assert str(request.url) == SESSION.metadata_server_url
        assert request.headers["SOAPAction"] == "upsertMetadata"

        root = ET.fromstring(request.content)
        ns = {"m": "http://soap.sforce.com/2006/04/metadata"}
        assert root.find(".//m:SessionHeader/m:sessionId", ns).text == "00Dxx!SESSION"
        metadata = root.findall(".//m:upsertMetadata/m:metadata", ns)
        assert len(metadata) == 1
        assert metadata[0].get("{http://www.w3.org/2001/XMLSchema-instance}type") == "StaticResource"
        assert metadata[0].find("m:fullName", ns).text == "styles"
        assert metadata[0].find("m:content", ns).text == "UEsDBA=="
        assert metadata[0].find("m:contentType", ns).text == "application/zip"
        assert metadata[0].find("m:cacheControl", ns).text == "Private"

    async def test_single_result_is_dict(self):
        transport = _transport(lambda request: httpx.Response(200, text=_upsert_response(OK_RESULT)))

        result = await transport.upsert(SESSION, "StaticResource", [])

        assert result == {"created": True, "fullName": "styles", "success": True}

    async def test_many_results_is_list(self):
        transport = _transport(
            lambda request: httpx.Response(200, text=_upsert_response(OK_RESULT, FAILED_RESULT))
        )

        result = await transport.upsert(SESSION, "StaticResource", [])

        assert isinstance(result, list)
        assert result[1] == {
            "fullName": "scripts",
            "success": False,
            "errors": [{"fields": ["content"], "message": "Invalid zip", "statusCode": "INVALID_FIELD"}],
        }

    async def test_no_results_is_none(self):
        transport = _transport(lambda request: httpx.Response(200, text=_upsert_response()))

        assert await transport.upsert(SESSION, "StaticResource", []) is None

    async def test_non_xml_body(self):
        transport = _transport(lambda request: httpx.Response(200, text="not xml"))

        with pytest.raises(TransportError, match="not XML"):
            await transport.upsert(SESSION, "StaticResource", [])


def test_satisfies_protocol():
    assert isinstance(SoapMetadataTransport("https://login.salesforce.com", "59.0"), MetadataTransport)
