"""Tests for the mail adapters."""
import json

import httpx
import pytest

from budgetflow.adapters.base import MailDeliveryError
from budgetflow.adapters.console import ConsoleMailAdapter
from budgetflow.adapters.factory import get_mail_adapter
from budgetflow.adapters.sendgrid_adapter import SENDGRID_SEND_URL, SendGridMailAdapter
from budgetflow.config import settings

LINK = "http://localhost:3000/accept-invite/g1/abc123"


@pytest.mark.asyncio
async def test_sendgrid_posts_invite():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    adapter = SendGridMailAdapter(
        "no-reply@budgetmail.com", api_key="SG.test", transport=httpx.MockTransport(handler)
    )
    await adapter.send_invite("bob@budgetmail.com", "Trip <2024>", LINK)

    assert len(seen) == 1
    request = seen[0]
    assert str(request.url) == SENDGRID_SEND_URL
    assert request.headers["Authorization"] == "Bearer SG.test"
    payload = json.loads(request.content)
    assert payload["personalizations"][0]["to"][0]["email"] == "bob@budgetmail.com"
    assert payload["from"]["email"] == "no-reply@budgetmail.com"
    assert LINK in payload["content"][0]["value"]
    assert "Trip &lt;2024&gt;" in payload["content"][1]["value"]


@pytest.mark.asyncio
async def test_sendgrid_error_status_raises():
    adapter = SendGridMailAdapter(
        "no-reply@budgetmail.com",
        api_key="SG.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(400, text="bad request")),
    )

    with pytest.raises(MailDeliveryError):
        await adapter.send_invite("bob@budgetmail.com", "Trip", LINK)


@pytest.mark.asyncio
async def test_sendgrid_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    adapter = SendGridMailAdapter(
        "no-reply@budgetmail.com", api_key="SG.test", transport=httpx.MockTransport(handler)
    )

    with pytest.raises(MailDeliveryError):
        await adapter.send_invite("bob@budgetmail.com", "Trip", LINK)


def test_sendgrid_requires_key(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "")

    with pytest.raises(ValueError):
        SendGridMailAdapter("no-reply@budgetmail.com")


def test_factory_picks_adapter(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "")
    assert isinstance(get_mail_adapter(), ConsoleMailAdapter)

    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.live")
    adapter = get_mail_adapter()
    assert isinstance(adapter, SendGridMailAdapter)
    assert adapter.api_key == "SG.live"
    assert adapter.sender == settings.email_from
