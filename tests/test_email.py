import asyncio
import json

import httpx
import pytest

from receiptpro.clients.emailjs import EmailJSClient
from receiptpro.schemas.email import EmailConfig
from receiptpro.services.email import EmailDispatcher, build_template_params, default_message
from receiptpro.services.exceptions import DownstreamServiceError, OperationInProgressError
from receiptpro.services.inflight import InFlightGuard

API_URL = "https://api.emailjs.com/api/v1.0/email/send"
CONFIG = EmailConfig(service_id="service_abc", template_id="template_xyz", public_key="public_123")


class RecordingTransport(httpx.MockTransport):
    """Mock transport that keeps every request it answered."""

    def __init__(self, status_code: int = 200, error: Exception | None = None) -> None:
        self.requests = []
        self._status_code = status_code
        self._error = error
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        return httpx.Response(self._status_code, text="OK" if self._status_code == 200 else "Bad Request")


def _dispatcher(transport: httpx.MockTransport) -> EmailDispatcher:
    client = EmailJSClient(API_URL, transport=transport)
    return EmailDispatcher(client, guard=InFlightGuard("e-mail send"))


def test_send_posts_template_params(make_receipt) -> None:
    transport = RecordingTransport()
    receipt = make_receipt()

    sent = asyncio.run(_dispatcher(transport).send(receipt, CONFIG))

    assert sent is True
    assert len(transport.requests) == 1
    request = transport.requests[0]
    assert str(request.url) == API_URL
    body = json.loads(request.content)
    assert body["service_id"] == "service_abc"
    assert body["template_id"] == "template_xyz"
    assert body["user_id"] == "public_123"
    params = body["template_params"]
    assert params["to_email"] == "jamie@example.com"
    assert params["subject"] == "Receipt RCP-20240101-007 from Chillbreeze Orchard"
    assert params["document_number"] == "RCP-20240101-007"
    assert params["document_total"] == "USD 139.32"
    assert params["document_date"] == "January 01, 2024"
    assert "Thank you for your purchase!" in params["message"]


def test_custom_message_replaces_default(make_invoice) -> None:
    transport = RecordingTransport()

    asyncio.run(_dispatcher(transport).send(make_invoice(), CONFIG, "Please pay soon."))

    params = json.loads(transport.requests[0].content)["template_params"]
    assert params["message"] == "Please pay soon."
    assert params["to_name"] == "Acme Pte Ltd"


def test_service_error_reports_false(make_receipt) -> None:
    transport = RecordingTransport(status_code=400)

    assert asyncio.run(_dispatcher(transport).send(make_receipt(), CONFIG)) is False


def test_network_error_reports_false(make_receipt) -> None:
    transport = RecordingTransport(error=httpx.ConnectError("connection refused"))

    assert asyncio.run(_dispatcher(transport).send(make_receipt(), CONFIG)) is False


def test_incomplete_configuration_does_not_call_the_service(make_receipt) -> None:
    transport = RecordingTransport()

    sent = asyncio.run(_dispatcher(transport).send(make_receipt(), EmailConfig(service_id="service_abc")))

    assert sent is False
    assert transport.requests == []


def test_client_raises_downstream_error_on_failure() -> None:
    client = EmailJSClient(API_URL, transport=RecordingTransport(status_code=403))

    with pytest.raises(DownstreamServiceError) as excinfo:
        asyncio.run(
            client.send(service_id="s", template_id="t", public_key="k", template_params={})
        )

    assert excinfo.value.status_code == 403


def test_concurrent_send_is_refused(make_receipt) -> None:
    guard = InFlightGuard("e-mail send")
    receipt = make_receipt()

    with guard.hold(receipt.id):
        dispatcher = EmailDispatcher(EmailJSClient(API_URL, transport=RecordingTransport()), guard=guard)
        with pytest.raises(OperationInProgressError):
            asyncio.run(dispatcher.send(receipt, CONFIG))


def test_default_messages(make_receipt, make_invoice) -> None:
    receipt_message = default_message(make_receipt())
    invoice_message = default_message(make_invoice())

    assert receipt_message.startswith("Dear Jamie Tan,")
    assert "- Payment Method: CARD" in receipt_message
    assert "Additional Notes:\nThanks for visiting!" in receipt_message
    assert invoice_message.startswith("Dear Acme Pte Ltd,")
    assert "- Due Date: January 31, 2024" in invoice_message
    assert invoice_message.endswith("Best regards,\nChillbreeze Orchard")


def test_template_params_for_invoice(make_invoice) -> None:
    params = build_template_params(make_invoice())

    assert params.subject == "Invoice INV-20240101-042 from Chillbreeze Orchard"
    assert params.from_email == "hello@chillbreeze.example"
    assert params.business_name == "Chillbreeze Orchard"
