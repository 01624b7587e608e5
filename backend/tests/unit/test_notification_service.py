"""Unit tests for the notification dispatcher."""

import json

import httpx
import pytest

from hess.core.config import Settings
from hess.services.notification_service import (
    EmailType,
    NotificationError,
    NotificationService,
    render_email,
)


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite:///./test.db",
        "jwt_secret": "test-secret-key-that-is-long-enough-for-hs256",
        "app_url": "https://portal.hess.test",
        "email_max_attempts": 2,
    }
    values.update(overrides)
    return Settings(**values)


class TestRenderEmail:
    def test_welcome_email_includes_secondary_contact_and_cc(self):
        settings = make_settings(email_welcome_cc=["board@hess.test"])

        message = render_email(
            EmailType.WELCOME_APPROVED,
            "jane@acme.edu",
            "Acme College",
            contact_name="Jane Doe",
            organization_data={"city": "Springfield", "student_information_system": "Banner"},
            secondary_email="bob@acme.edu",
            settings=settings,
        )

        assert message.subject == "Welcome to HESS Consortium - Acme College"
        assert message.to == ["jane@acme.edu", "bob@acme.edu"]
        assert message.cc == ["board@hess.test"]
        assert "Springfield" in message.html
        assert "Banner" in message.html
        assert "https://portal.hess.test" in message.html

    def test_secondary_contact_equal_to_primary_is_not_duplicated(self):
        message = render_email(
            EmailType.WELCOME_APPROVED,
            "jane@acme.edu",
            "Acme College",
            secondary_email="JANE@acme.edu",
            settings=make_settings(),
        )

        assert message.to == ["jane@acme.edu"]

    def test_payload_values_are_escaped(self):
        message = render_email(
            EmailType.REGISTRATION_REJECTED,
            "jane@acme.edu",
            "<script>Acme</script>",
            reason="Missing <b>FTE</b>",
            settings=make_settings(),
        )

        assert "<script>" not in message.html
        assert "&lt;script&gt;Acme&lt;/script&gt;" in message.html
        assert "Missing &lt;b&gt;FTE&lt;/b&gt;" in message.html
        assert message.subject == "HESS Consortium Application Update - <script>Acme</script>"

    def test_password_reset_requires_link(self):
        with pytest.raises(ValueError):
            render_email(
                EmailType.PASSWORD_RESET, "new@acme.edu", "Acme College", settings=make_settings()
            )

        message = render_email(
            EmailType.PASSWORD_RESET,
            "new@acme.edu",
            "Acme College",
            recovery_link="https://portal.hess.test/auth/reset-password?type=recovery&token=abc",
            settings=make_settings(),
        )
        assert message.subject == "HESS Consortium - Set your password"
        assert "type=recovery&amp;token=abc" in message.html

    def test_profile_update_email(self):
        message = render_email(
            EmailType.PROFILE_UPDATE_APPROVED,
            "new@acme.edu",
            "Acme College",
            contact_name="Nia New",
            settings=make_settings(),
        )

        assert message.to == ["new@acme.edu"]
        assert message.subject == "HESS Consortium - Acme College profile update approved"
        assert "Nia New" in message.html


class TestSend:
    @pytest.mark.asyncio
    async def test_send_without_api_key_is_disabled(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        service = NotificationService(
            settings=make_settings(resend_api_key=None),
            transport=httpx.MockTransport(handler),
        )

        sent = await service.send(EmailType.PROFILE_UPDATE_APPROVED, "new@acme.edu", "Acme College")

        assert sent is False

    @pytest.mark.asyncio
    async def test_send_posts_to_email_api(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"id": "email-1"})

        settings = make_settings(resend_api_key="re_test", email_reply_to="support@hess.test")
        service = NotificationService(settings=settings, transport=httpx.MockTransport(handler))

        sent = await service.send(
            EmailType.REGISTRATION_REJECTED,
            "jane@acme.edu",
            "Acme College",
            reason="Incomplete",
        )

        assert sent is True
        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == settings.resend_api_url
        assert request.headers["Authorization"] == "Bearer re_test"
        payload = json.loads(request.content)
        assert payload["to"] == ["jane@acme.edu"]
        assert payload["from"] == settings.email_from
        assert payload["reply_to"] == "support@hess.test"
        assert "Incomplete" in payload["html"]
        assert "cc" not in payload

    @pytest.mark.asyncio
    async def test_rejected_message_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"message": "invalid to"})

        service = NotificationService(
            settings=make_settings(resend_api_key="re_test"),
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(NotificationError, match="422"):
            await service.send(EmailType.PROFILE_UPDATE_APPROVED, "bad", "Acme College")

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, monkeypatch):
        async def no_sleep(_delay):
            return None

        monkeypatch.setattr("hess.services.http_service.asyncio.sleep", no_sleep)
        responses = iter([httpx.Response(503), httpx.Response(200, json={"id": "email-2"})])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        service = NotificationService(
            settings=make_settings(resend_api_key="re_test"),
            transport=httpx.MockTransport(handler),
        )

        assert await service.send(
            EmailType.PROFILE_UPDATE_APPROVED, "new@acme.edu", "Acme College"
        ) is True
