"""
Tests for the order lookup client and the email dispatcher.
HTTP is replaced by a scripted session object.
"""

import pytest
import requests

from src.integrations import (
    EmailDispatcher,
    OrderLookupService,
    SUPPORTED_LANGUAGES,
    emails_delivered,
    render_report_html,
    render_report_text,
)
from src.schemas.models import Phase
from utils.config import config


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


class ScriptedSession:
    """Returns queued responses (or raises queued exceptions) per HTTP verb."""

    def __init__(self, post=None, get=None):
        self.post_queue = list(post or [])
        self.get_queue = list(get or [])
        self.posts = []
        self.gets = []

    def _next(self, queue):
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url, **kwargs):
        self.posts.append((url, kwargs))
        return self._next(self.post_queue)

    def get(self, url, **kwargs):
        self.gets.append((url, kwargs))
        return self._next(self.get_queue)


TOKEN = FakeResponse(200, {"access_token": "tok-123", "expires_in": 3600})
ORDER = FakeResponse(200, {
    "order_number": "RN100200300",
    "vehicle_vin": "5YJYGDEE1MF000001",
    "vehicle_model": "Model Y Performance",
    "vehicle_color": "Midnight Silver",
    "customer_name": "Jane Doe",
    "customer_email": "jane@example.com",
})


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestOrderLookup:
    """Order lookup with placeholder fallback."""

    def service(self, session, clock=None):
        return OrderLookupService(
            session=session, clock=clock or Clock(), client_id="id", client_secret="secret"
        )

    def test_resolves_order(self):
        session = ScriptedSession(post=[TOKEN], get=[ORDER])
        order = self.service(session).get_order("RN100200300")

        assert order.is_placeholder is False
        assert order.vin == "5YJYGDEE1MF000001"
        assert order.sales_rep_email == config.default_sales_rep_email
        url, kwargs = session.gets[0]
        assert url.endswith("/RN100200300")
        assert kwargs["headers"]["Authorization"] == "Bearer tok-123"
        assert kwargs["timeout"] == config.api_timeout

    def test_network_failure_returns_placeholder(self):
        session = ScriptedSession(post=[TOKEN], get=[requests.ConnectionError("down")])
        order = self.service(session).get_order("RN100200300")

        assert order.is_placeholder is True
        assert order.order_number == "RN100200300"
        assert order.vin == "7SAYGDEF*NF123456"
        assert order.vehicle_model == "Model Y Long Range"
        assert order.vehicle_color == "Pearl White Multi-Coat"
        assert order.customer_name == "Tesla Customer"

    def test_http_error_returns_placeholder(self):
        session = ScriptedSession(post=[TOKEN], get=[FakeResponse(404)])
        assert self.service(session).get_order("RN1").is_placeholder is True

    def test_token_failure_returns_placeholder(self):
        session = ScriptedSession(post=[FakeResponse(401)], get=[ORDER])
        assert self.service(session).get_order("RN1").is_placeholder is True
        assert session.gets == []

    def test_unconfigured_returns_placeholder(self):
        session = ScriptedSession(post=[TOKEN], get=[ORDER])
        service = OrderLookupService(session=session, client_id="", client_secret="")
        service.client_id = None

        assert service.get_order("RN1").is_placeholder is True
        assert session.posts == []

    def test_token_cached_until_expiry(self):
        clock = Clock()
        session = ScriptedSession(post=[TOKEN], get=[ORDER])
        service = self.service(session, clock)

        service.get_order("RN1")
        service.get_order("RN1")
        assert len(session.posts) == 1

        clock.now += 3600
        service.get_order("RN1")
        assert len(session.posts) == 2

    def test_health_check(self):
        assert self.service(ScriptedSession(post=[TOKEN])).health_check() == (True, "Token acquired")
        assert self.service(ScriptedSession(post=[FakeResponse(500)])).health_check()[0] is False


class TestEmailRendering:
    """Localized report bodies."""

    def test_text_body(self, inspection):
        inspection.failed_items = 2
        text = render_report_text(inspection, "https://storage.test/pdf")

        assert inspection.order_number in text
        assert "https://storage.test/pdf" in text
        assert "2" in text

    def test_html_escapes_values(self, inspection):
        inspection.customer_name = "<b>Eve</b>"
        html = render_report_html(inspection, "https://storage.test/pdf?a=1&b=2")

        assert "<b>Eve</b>" not in html
        assert "&lt;b&gt;Eve&lt;/b&gt;" in html
        assert "a=1&amp;b=2" in html

    @pytest.mark.parametrize("language", SUPPORTED_LANGUAGES)
    def test_all_languages_render(self, inspection, language):
        assert inspection.order_number in render_report_text(inspection, "https://x", language)

    def test_unknown_language_falls_back(self, inspection):
        assert render_report_text(inspection, "https://x", "xx") == render_report_text(inspection, "https://x", "en")


class TestEmailDispatcher:
    """SendGrid fan-out."""

    def dispatcher(self, session, support_email=""):
        return EmailDispatcher(api_key="SG.test", session=session, support_email=support_email)

    def test_disabled_sends_nothing(self, inspection):
        session = ScriptedSession(post=[FakeResponse(202)])
        dispatcher = EmailDispatcher(api_key="", session=session, support_email="")

        results = dispatcher.send_inspection_report(inspection, "https://x")

        assert results == {"representative": False, "customer": False}
        assert session.posts == []
        assert emails_delivered(results) is False

    def test_fan_out(self, inspection):
        session = ScriptedSession(post=[FakeResponse(202)])
        results = self.dispatcher(session, support_email="support@example.com").send_inspection_report(
            inspection, "https://x"
        )

        assert results == {"representative": True, "customer": True, "support": True}
        subjects = [kwargs["json"]["subject"] for _, kwargs in session.posts]
        assert subjects[0] == f"Tesla Pre-Delivery Inspection Report - Order {inspection.order_number}"
        assert subjects[2] == f"[TRACKING] Inspection Report Generated - {inspection.order_number}"

        recipients = [kwargs["json"]["personalizations"][0]["to"][0]["email"] for _, kwargs in session.posts]
        assert recipients == [inspection.sales_rep_email, inspection.customer_email, "support@example.com"]

    def test_no_customer_address(self, inspection):
        inspection.customer_email = None
        session = ScriptedSession(post=[FakeResponse(202)])
        results = self.dispatcher(session).send_inspection_report(inspection, "https://x")

        assert results == {"representative": True}
        assert emails_delivered(results) is True

    def test_provider_error(self, inspection):
        session = ScriptedSession(post=[FakeResponse(400, text="bad request")])
        results = self.dispatcher(session).send_inspection_report(inspection, "https://x")

        assert results["representative"] is False
        assert emails_delivered(results) is False

    def test_network_error_not_raised(self, inspection):
        session = ScriptedSession(post=[requests.ConnectionError("down")])
        assert self.dispatcher(session).send(["a@example.com"], "s", "<p>h</p>", "t") is False

    def test_attachments_encoded(self):
        session = ScriptedSession(post=[FakeResponse(200)])
        sent = self.dispatcher(session).send(
            ["a@example.com"], "s", "<p>h</p>", "t",
            attachments=[{"content": b"%PDF", "filename": "r.pdf", "type": "application/pdf"}],
        )

        assert sent is True
        attachment = session.posts[0][1]["json"]["attachments"][0]
        assert attachment["content"] == "JVBERg=="
        assert attachment["disposition"] == "attachment"

    def test_phase_notification(self, inspection):
        session = ScriptedSession(post=[FakeResponse(202)])
        assert self.dispatcher(session).send_phase_notification(inspection, Phase.ON_DELIVERY) is True
        assert "Completed" in session.posts[0][1]["json"]["subject"]

    def test_emails_delivered(self):
        assert emails_delivered({"representative": True, "customer": True}) is True
        assert emails_delivered({"representative": True, "customer": False}) is False
        assert emails_delivered({"representative": False}) is False
        assert emails_delivered({"representative": True, "customer": True, "support": False}) is True
