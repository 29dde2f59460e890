import httpx

from app.config import Settings
from app.services import notifications
from app.services.notifications import NotificationResult, send_email, strip_html

# send_email is imported above, before the autouse outbox fixture swaps the module attribute


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


class FakeClient:
    """Stands in for httpx.Client; answers each POST from a queue."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, *args, **kwargs):
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def post(self, url, auth=None, data=None):
        self.calls.append({"url": url, "data": data})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def mailgun_settings(**overrides):
    values = {
        "mailgun_api_key": "key-123",
        "mailgun_domain": "mg.example.com",
        "mailgun_from_email": "noreply@mg.example.com",
        "sendgrid_api_key": "",
    }
    values.update(overrides)
    return Settings(**values)


def test_unconfigured_transport_reports_not_sent():
    settings = Settings(mailgun_api_key="", mailgun_domain="", sendgrid_api_key="")
    assert send_email("a@example.com", "Hi", "<p>Hi</p>", settings=settings) == NotificationResult(
        sent=False, error="Email transport not configured"
    )


def test_mailgun_success(monkeypatch):
    fake = FakeClient([FakeResponse(200)])
    monkeypatch.setattr(httpx, "Client", fake)
    result = send_email("a@example.com", "Hi", "<p>Hello <b>there</b></p>", settings=mailgun_settings())
    assert result.sent is True
    assert fake.calls[0]["url"] == "https://api.mailgun.net/v3/mg.example.com/messages"
    assert fake.calls[0]["data"]["text"] == "Hello there"


def test_mailgun_retries_eu_on_401(monkeypatch):
    fake = FakeClient([FakeResponse(401, "Forbidden"), FakeResponse(200)])
    monkeypatch.setattr(httpx, "Client", fake)
    assert send_email("a@example.com", "Hi", "<p>Hi</p>", settings=mailgun_settings()).sent is True
    assert fake.calls[1]["url"].startswith("https://api.eu.mailgun.net/")


def test_mailgun_rejection_is_returned_not_raised(monkeypatch):
    monkeypatch.setattr(httpx, "Client", FakeClient([FakeResponse(400, "bad from")]))
    result = send_email("a@example.com", "Hi", "<p>Hi</p>", settings=mailgun_settings())
    assert result.sent is False
    assert "400" in result.error


def test_mailgun_network_error_is_returned_not_raised(monkeypatch):
    monkeypatch.setattr(httpx, "Client", FakeClient([httpx.ConnectError("refused")]))
    result = send_email("a@example.com", "Hi", "<p>Hi</p>", settings=mailgun_settings())
    assert result.sent is False
    assert result.error.startswith("ConnectError")


def test_mismatched_sender_uses_sending_domain(monkeypatch):
    fake = FakeClient([FakeResponse(200)])
    monkeypatch.setattr(httpx, "Client", fake)
    send_email("a@example.com", "Hi", "<p>Hi</p>", settings=mailgun_settings(mailgun_from_email="me@other.org"))
    assert "<noreply@mg.example.com>" in fake.calls[0]["data"]["from"]


def test_strip_html():
    assert strip_html("<p>One</p><p>Two &amp; three</p>") == "One Two & three"


def test_response_fields():
    assert NotificationResult(sent=True).as_response_fields() == {"email_sent": True}
    assert NotificationResult(sent=False, error="boom").as_response_fields() == {
        "email_sent": False,
        "email_error": "boom",
    }


def test_admin_invitation_email_mentions_expiry(outbox):
    from datetime import datetime, timezone

    expires = datetime(2030, 1, 2, 15, 30, tzinfo=timezone.utc)
    notifications.send_admin_invitation_email("x@example.com", "X <Admin>", "https://app/setup?token=t", expires)
    html = outbox.to("x@example.com")[0]["html"]
    assert "https://app/setup?token=t" in html
    assert "January 02, 2030 at 15:30 UTC" in html
    assert "X &lt;Admin&gt;" in html


def test_sendgrid_message_build_failure_is_returned_not_raised(monkeypatch):
    import sendgrid.helpers.mail

    def broken(**kwargs):
        raise ValueError("bad sender")

    monkeypatch.setattr(sendgrid.helpers.mail, "Mail", broken)
    settings = Settings(mailgun_api_key="", mailgun_domain="", sendgrid_api_key="SG.key")
    assert send_email("a@example.com", "Hi", "<p>Hi</p>", settings=settings) == NotificationResult(
        sent=False, error="ValueError: bad sender"
    )
