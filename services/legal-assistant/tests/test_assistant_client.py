import asyncio
from types import SimpleNamespace

import httpx
import pytest

from app import assistant_client
from app.assistant_client import AssistantUnavailable, reply_text
from app.config import settings
from app.schemas.chat import UserContext

USER = UserContext(id="u-1", role="abogado", tenant_id="despacho-1", organization_id="despacho-1")


class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def json(self):
        if isinstance(self._payload, str):
            raise ValueError("not json")
        return self._payload

    @property
    def text(self):
        return self._payload if isinstance(self._payload, str) else ""

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError("http error", request=None, response=None)


class _FakeAsyncClient:
    def __init__(self, responder):
        self._responder = responder
        self.last_kwargs = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url, json=None, headers=None):
        self.last_kwargs = SimpleNamespace(url=url, json=json, headers=headers)
        return self._responder(json)


def _install(monkeypatch, responder):
    fake_client = _FakeAsyncClient(responder)
    timeouts = []

    def factory(timeout):
        timeouts.append(timeout)
        return fake_client

    monkeypatch.setattr(assistant_client.httpx, "AsyncClient", factory)
    return fake_client, timeouts


def test_send_message_posts_webhook_contract(monkeypatch):
    fake_client, timeouts = _install(monkeypatch, lambda payload: _FakeResponse({"output": "Hola"}))

    reply = asyncio.run(assistant_client.send_message("Necesito una cita", USER))

    assert reply == "Hola"
    assert fake_client.last_kwargs.url == settings.n8n_webhook_url
    body = fake_client.last_kwargs.json
    assert body["chatInput"] == "Necesito una cita"
    assert body["user"] == {
        "id": "u-1",
        "role": "abogado",
        "organizationId": "despacho-1",
        "tenantId": "despacho-1",
    }
    assert body["timestamp"]
    assert timeouts == [30.0]


def test_webhook_url_is_configurable(monkeypatch):
    monkeypatch.setattr(settings, "n8n_webhook_url", "http://n8n.local/webhook/ava")
    fake_client, _ = _install(monkeypatch, lambda payload: _FakeResponse({"output": "ok"}))

    asyncio.run(assistant_client.send_message("hola", USER))

    assert fake_client.last_kwargs.url == "http://n8n.local/webhook/ava"


def test_plain_text_body_is_used_as_reply(monkeypatch):
    _install(monkeypatch, lambda payload: _FakeResponse("Respuesta en texto"))
    assert asyncio.run(assistant_client.send_message("hola", USER)) == "Respuesta en texto"


def test_transport_failure_raises_unavailable(monkeypatch):
    def responder(payload):
        raise httpx.ConnectTimeout("timed out")

    _install(monkeypatch, responder)

    with pytest.raises(AssistantUnavailable):
        asyncio.run(assistant_client.send_message("hola", USER))


def test_error_status_raises_unavailable(monkeypatch):
    _install(monkeypatch, lambda payload: _FakeResponse({"message": "boom"}, status=502))

    with pytest.raises(AssistantUnavailable):
        asyncio.run(assistant_client.send_message("hola", USER))


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ({"output": "directo"}, "directo"),
        ([{"output": "en lista"}], "en lista"),
        ({"data": {"items": [3, {"text": "profundo"}]}, "otro": "segundo"}, "profundo"),
        ({"output": None, "response": "respaldo"}, "respaldo"),
        ({"count": 1}, None),
    ],
)
def test_reply_text_prefers_output_then_first_string(body, expected):
    assert reply_text(body) == expected
