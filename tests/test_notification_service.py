"""Unit tests for SMS / email dispatch. No network: gateways are mocked."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import date, datetime
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock, MagicMock

import httpx

from app.config import Settings
from app.errors import ExternalDispatchError
from app.models.customer import NOTIFY_NONE, NOTIFY_SMS, NOTIFY_EMAIL, NOTIFY_BOTH
from app.services.notification_service import (
    NotificationDispatcher, build_availability_messages, build_booking_created_messages,
    build_payment_received_messages, build_booking_cancelled_messages,
)


def customer(preference, contact_no="09171234567", email="ana@example.com"):
    return SimpleNamespace(id=1, first_name="Ana", contact_no=contact_no, email=email,
                           notification_preference=preference)


CAR = SimpleNamespace(id=3, display_name="Toyota Vios (2022)")


def unconfigured():
    return NotificationDispatcher(Settings(SMS_API_KEY=None, SMTP_USER=None, SMTP_PASSWORD=None))


def sms_configured():
    return NotificationDispatcher(Settings(SMS_API_KEY="secret", SMTP_USER=None, SMTP_PASSWORD=None))


def mock_async_client(response=None, error=None):
    client = MagicMock()
    client.post = AsyncMock(return_value=response, side_effect=error)
    client_cm = MagicMock()
    client_cm.__aenter__ = AsyncMock(return_value=client)
    client_cm.__aexit__ = AsyncMock(return_value=False)
    return client_cm, client


class TestMessages:
    def test_availability_text_names_customer_and_car(self):
        sms, subject, body = build_availability_messages(customer(NOTIFY_SMS), CAR)
        assert "Ana" in sms and "Toyota Vios (2022)" in sms
        assert subject == "Car Available: Toyota Vios (2022)"
        assert "now available" in body

    def test_created_notice_shows_deadline_in_local_time(self):
        booking = SimpleNamespace(id=12, start_date=date(2025, 3, 8), end_date=date(2025, 3, 9),
                                  payment_deadline=datetime(2025, 3, 6, 23, 0), balance=3000, total_amount=3000)
        sms, subject, body = build_booking_created_messages(customer(NOTIFY_SMS), CAR, booking)
        # 23:00 UTC is 07:00 the next morning in Manila
        assert "Mar 07, 2025 07:00 AM" in sms
        assert "₱3,000.00" in sms
        assert subject == "Booking Successful - Toyota Vios (2022) (Booking #12)"

    def test_payment_notice_names_amount_and_balance(self):
        booking = SimpleNamespace(id=12, start_date=date(2025, 3, 8), end_date=date(2025, 3, 9), balance=2000)
        payment = SimpleNamespace(amount=1000, payment_method="GCash", reference_no="GC-1")
        sms, _, body = build_payment_received_messages(customer(NOTIFY_SMS), CAR, booking, payment)
        assert "GCash payment of ₱1,000.00" in sms
        assert "Remaining balance: ₱2,000.00" in body

    def test_cancel_notice_carries_reason(self):
        booking = SimpleNamespace(id=12, start_date=date(2025, 3, 8), end_date=date(2025, 3, 9),
                                  cancellation_reason="Flight moved")
        _, _, body = build_booking_cancelled_messages(customer(NOTIFY_SMS), CAR, booking)
        assert "Reason: Flight moved" in body


class TestSimulatedChannels:
    @pytest.mark.asyncio
    async def test_sms_simulated_when_unconfigured(self):
        notice = await unconfigured().notify_availability(customer(NOTIFY_SMS), CAR)
        assert notice.success
        assert notice.succeeded_channels == ["SMS"]
        assert notice.results[0].simulated

    @pytest.mark.asyncio
    async def test_both_channels_attempted(self):
        notice = await unconfigured().notify_availability(customer(NOTIFY_BOTH), CAR)
        assert sorted(notice.succeeded_channels) == ["Email", "SMS"]
        assert notice.error is None

    @pytest.mark.asyncio
    async def test_missing_contact_fails_that_channel_only(self):
        notice = await unconfigured().notify_availability(customer(NOTIFY_BOTH, contact_no=None), CAR)
        assert notice.success
        assert notice.succeeded_channels == ["Email"]
        assert notice.error == "SMS: No contact number"

    @pytest.mark.asyncio
    async def test_missing_email_fails_notice(self):
        notice = await unconfigured().notify_availability(customer(NOTIFY_EMAIL, email=None), CAR)
        assert not notice.success
        assert notice.error == "Email: No email"


class TestSmsGateway:
    @pytest.mark.asyncio
    async def test_gateway_message_id_returned(self):
        response = MagicMock(status_code=200)
        response.json.return_value = [{"message_id": 98765}]
        client_cm, client = mock_async_client(response)
        with patch("app.services.notification_service.httpx.AsyncClient", return_value=client_cm):
            result = await sms_configured().send_sms("09171234567", "hello")
        assert result.success
        assert result.message_id == "98765"
        assert client.post.call_args.kwargs["data"]["apikey"] == "secret"

    @pytest.mark.asyncio
    async def test_http_error_status_is_a_failed_result(self):
        client_cm, _ = mock_async_client(MagicMock(status_code=500))
        with patch("app.services.notification_service.httpx.AsyncClient", return_value=client_cm):
            result = await sms_configured().send_sms("09171234567", "hello")
        assert not result.success
        assert "HTTP 500" in result.error

    @pytest.mark.asyncio
    async def test_unreachable_gateway_is_a_failed_result(self):
        client_cm, _ = mock_async_client(error=httpx.ConnectError("connection refused"))
        with patch("app.services.notification_service.httpx.AsyncClient", return_value=client_cm):
            result = await sms_configured().send_sms("09171234567", "hello")
        assert not result.success
        assert "unreachable" in result.error

    @pytest.mark.asyncio
    async def test_failed_sms_does_not_block_email(self):
        dispatcher = sms_configured()
        with patch.object(dispatcher, "_post_sms", new_callable=AsyncMock,
                          side_effect=ExternalDispatchError("SMS", "SMS gateway returned HTTP 503")):
            notice = await dispatcher.notify_availability(customer(NOTIFY_BOTH), CAR)
        assert notice.succeeded_channels == ["Email"]
        assert "HTTP 503" in notice.error


class TestEmail:
    @pytest.mark.asyncio
    async def test_smtp_failure_is_a_failed_result(self):
        dispatcher = NotificationDispatcher(Settings(SMTP_USER="bot@example.com", SMTP_PASSWORD="pw"))
        with patch("app.services.notification_service.smtplib.SMTP", side_effect=OSError("no route")):
            result = await dispatcher.send_email("ana@example.com", "Subject", "Body")
        assert not result.success
        assert "no route" in result.error

    @pytest.mark.asyncio
    async def test_smtp_delivery(self):
        dispatcher = NotificationDispatcher(Settings(SMTP_USER="bot@example.com", SMTP_PASSWORD="pw"))
        with patch("app.services.notification_service.smtplib.SMTP") as mock_smtp:
            result = await dispatcher.send_email("ana@example.com", "Subject", "Body")
        assert result.success and not result.simulated
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.login.assert_called_once_with("bot@example.com", "pw")
        smtp.send_message.assert_called_once()


class TestLifecycleNotices:
    BOOKING = SimpleNamespace(id=12, start_date=date(2025, 3, 8), end_date=date(2025, 3, 9),
                              balance=0, total_amount=3000, cancellation_reason=None)

    @pytest.mark.asyncio
    async def test_confirmed_notice_follows_preference(self):
        notice = await unconfigured().notify_booking_confirmed(customer(NOTIFY_BOTH), CAR, self.BOOKING)
        assert notice.success
        assert sorted(notice.succeeded_channels) == ["Email", "SMS"]

    @pytest.mark.asyncio
    async def test_disabled_preference_sends_nothing(self):
        dispatcher = unconfigured()
        with patch.object(dispatcher, "send_sms", new_callable=AsyncMock) as mock_sms:
            notice = await dispatcher.notify_booking_cancelled(customer(NOTIFY_NONE), CAR, self.BOOKING)
        assert notice.results == []
        assert not notice.success
        mock_sms.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_return_reminder_goes_by_email(self):
        dispatcher = unconfigured()
        with patch.object(dispatcher, "send_email", new_callable=AsyncMock) as mock_email:
            await dispatcher.notify_return_reminder(customer(NOTIFY_EMAIL), CAR, self.BOOKING)
        address, subject, _ = mock_email.await_args.args
        assert address == "ana@example.com"
        assert subject == "Return Reminder - Toyota Vios (2022) due today"
