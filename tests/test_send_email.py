import asyncio

import pytest
import requests

from app.models.contact import ContactEmailRequest
from app.server.dependencies import get_settings
from app.server.main import app
from app.services import email_service
from app.services.email_service import EmailJSService

CONTACT_FORM = {
    "name": "Fan",
    "email": "fan@example.com",
    "subject": "Booking",
    "category": "booking",
    "message": "Can you play at our festival?",
}


class FakeResponse:
    def __init__(self, status_code, text):
        self.status_code = status_code
        self.text = text


def _on_event_loop():
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class FakeEmailJS:
    def __init__(self):
        self.sent = []
        self.on_event_loop = []
        self.response = FakeResponse(200, "OK")

    def __call__(self, url, json=None, timeout=None):
        self.sent.append((url, json))
        self.on_event_loop.append(_on_event_loop())
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@pytest.fixture
def emailjs(monkeypatch):
    fake = FakeEmailJS()
    monkeypatch.setattr(email_service.requests, "post", fake)
    return fake


def test_send_email(client, emailjs):
    response = client.post("/api/send-email", json=CONTACT_FORM)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Email sent successfully",
        "emailId": "OK",
    }

    url, payload = emailjs.sent[0]
    assert url == EmailJSService.API_URL
    assert payload["service_id"] == "ej-service"
    assert payload["template_id"] == "ej-template"
    assert payload["user_id"] == "ej-public"
    assert "accessToken" not in payload
    params = payload["template_params"]
    assert params["from_name"] == "Fan"
    assert params["from_email"] == "fan@example.com"
    assert params["to_email"] == "info@yobaexo.com"
    assert params["time"]


@pytest.mark.parametrize("missing", sorted(CONTACT_FORM))
def test_all_fields_required(client, emailjs, missing):
    form = {k: v for k, v in CONTACT_FORM.items() if k != missing}

    response = client.post("/api/send-email", json=form)

    assert response.status_code == 400
    assert response.json()["error"].startswith(missing)
    assert emailjs.sent == []


def test_rejects_invalid_email(client, emailjs):
    response = client.post(
        "/api/send-email", json={**CONTACT_FORM, "email": "not-an-email"}
    )

    assert response.status_code == 400
    assert emailjs.sent == []


@pytest.mark.parametrize(
    "upstream,expected",
    [(400, 400), (401, 500), (403, 500), (429, 429), (502, 500)],
)
def test_upstream_status_mapping(client, emailjs, upstream, expected):
    emailjs.response = FakeResponse(upstream, "upstream says no")

    response = client.post("/api/send-email", json=CONTACT_FORM)

    assert response.status_code == expected
    assert "error" in response.json()


def test_upstream_detail_hidden_in_production(client, emailjs, settings):
    production = settings.model_copy(update={"env": "p"})
    app.dependency_overrides[get_settings] = lambda: production
    emailjs.response = requests.ConnectionError("connection refused")

    response = client.post("/api/send-email", json=CONTACT_FORM)

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to send email",
        "message": "An error occurred while sending email",
    }


def test_private_key_sent_as_access_token(emailjs):
    service = EmailJSService(
        public_key="pub",
        service_id="svc",
        template_id="tpl",
        recipient="owner@example.com",
        private_key="priv",
    )
    params = service.build_template_params(ContactEmailRequest(**CONTACT_FORM))

    assert params["to_email"] == "owner@example.com"
    assert params["category"] == "booking"

    asyncio.run(service.send_contact_email(ContactEmailRequest(**CONTACT_FORM)))
    assert emailjs.sent[0][1]["accessToken"] == "priv"


def test_not_configured(client, settings, emailjs):
    unconfigured = settings.model_copy(update={"emailjs_service_id": None})
    app.dependency_overrides[get_settings] = lambda: unconfigured

    response = client.post("/api/send-email", json=CONTACT_FORM)

    assert response.status_code == 500
    assert response.json() == {"error": "Email service not configured"}


def test_send_runs_off_the_event_loop(emailjs):
    service = EmailJSService(
        public_key="pub", service_id="svc", template_id="tpl", recipient="owner@example.com"
    )

    email_id = asyncio.run(service.send_contact_email(ContactEmailRequest(**CONTACT_FORM)))

    assert email_id == "OK"
    assert emailjs.on_event_loop == [False]
