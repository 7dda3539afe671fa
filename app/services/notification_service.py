# app/services/notification_service.py
"""
Outbound SMS / email dispatch for customer notices: car availability,
booking lifecycle (created, confirmed, payment received, cancelled) and
the return-day reminder.

SMS:   POST {SMS_API_URL} (form-encoded: apikey, number, message, sendername)
Email: SMTP with STARTTLS, run on a worker thread

A channel with no credentials configured is simulated and reported as a
success. Channel failures are raised internally as ExternalDispatchError
and returned to callers as failed DispatchResults, never as exceptions.
"""

import asyncio
import smtplib
from dataclasses import dataclass, field
from datetime import datetime
from email.message import EmailMessage
from typing import Optional

import httpx

from app.config import settings
from app.errors import ExternalDispatchError
from app.models.customer import NOTIFY_SMS, NOTIFY_EMAIL, NOTIFY_BOTH
from app.utils.business_time import format_business_time
from app.utils.logger import get_logger

logger = get_logger(__name__)

CHANNEL_SMS = "SMS"
CHANNEL_EMAIL = "Email"

PREFERENCE_CHANNELS = {
    NOTIFY_SMS: (CHANNEL_SMS,),
    NOTIFY_EMAIL: (CHANNEL_EMAIL,),
    NOTIFY_BOTH: (CHANNEL_SMS, CHANNEL_EMAIL),
}


@dataclass
class DispatchResult:
    success: bool
    channel: str
    error: Optional[str] = None
    simulated: bool = False
    message_id: Optional[str] = None


@dataclass
class CustomerNotice:
    results: list = field(default_factory=list)

    @property
    def success(self) -> bool:
        return any(r.success for r in self.results)

    @property
    def succeeded_channels(self) -> list[str]:
        return [r.channel for r in self.results if r.success]

    @property
    def error(self) -> Optional[str]:
        errors = [f"{r.channel}: {r.error}" for r in self.results if not r.success and r.error]
        return "; ".join(errors) or None


def build_availability_messages(customer, car) -> tuple[str, str, str]:
    """Returns (sms_text, email_subject, email_body)."""
    car_name = car.display_name
    company = settings.COMPANY_NAME
    sms = f"Hi {customer.first_name}! The {car_name} is now available for booking at {company}. Book now!"
    subject = f"Car Available: {car_name}"
    body = (
        f"Hi {customer.first_name},\n\n"
        f"Great news! The {car_name} you were interested in is now available for booking.\n\n"
        f"Visit our website to book this car now.\n\n"
        f"Thank you for choosing {company}!\n"
    )
    return sms, subject, body


def _peso(amount) -> str:
    return f"₱{amount or 0:,.2f}"


def _stay(booking) -> str:
    return f"{booking.start_date:%b %d, %Y} to {booking.end_date:%b %d, %Y}"


def build_booking_created_messages(customer, car, booking) -> tuple[str, str, str]:
    deadline = format_business_time(booking.payment_deadline) if booking.payment_deadline else "the deadline"
    company = settings.COMPANY_NAME
    sms = (f"Hi {customer.first_name}! Your booking for {car.display_name} is successful! "
           f"To confirm, pay {_peso(booking.balance)} by {deadline}. Booking ID: {booking.id}. - {company}")
    subject = f"Booking Successful - {car.display_name} (Booking #{booking.id})"
    body = (
        f"Hi {customer.first_name},\n\n"
        f"Your booking for the {car.display_name} ({_stay(booking)}) has been received.\n\n"
        f"Total amount: {_peso(booking.total_amount)}\n"
        f"Please pay by {deadline} to confirm it. Unpaid bookings are released automatically.\n\n"
        f"Thank you for choosing {company}!\n"
    )
    return sms, subject, body


def build_booking_confirmed_messages(customer, car, booking) -> tuple[str, str, str]:
    company = settings.COMPANY_NAME
    sms = (f"Hi {customer.first_name}! Your booking for {car.display_name} is now CONFIRMED! "
           f"Pickup: {booking.start_date:%b %d, %Y}. Booking ID: {booking.id}. See you soon! - {company}")
    subject = f"Booking Confirmed - {car.display_name} (Booking #{booking.id})"
    body = (
        f"Hi {customer.first_name},\n\n"
        f"Your booking for the {car.display_name} ({_stay(booking)}) is confirmed.\n"
        f"Remaining balance: {_peso(booking.balance)}\n\n"
        f"See you on {booking.start_date:%b %d, %Y}!\n{company}\n"
    )
    return sms, subject, body


def build_payment_received_messages(customer, car, booking, payment) -> tuple[str, str, str]:
    company = settings.COMPANY_NAME
    method = f"{payment.payment_method} " if payment.payment_method else ""
    sms = (f"Hi {customer.first_name}! We've received your {method}payment of {_peso(payment.amount)} "
           f"for your {car.display_name} booking ({_stay(booking)}). "
           f"Remaining balance: {_peso(booking.balance)}. Thank you! - {company}")
    subject = f"Payment Received - {_peso(payment.amount)} for {car.display_name}"
    body = (
        f"Hi {customer.first_name},\n\n"
        f"We received your payment of {_peso(payment.amount)} for booking #{booking.id}.\n"
        f"Reference: {payment.reference_no or 'n/a'}\n"
        f"Remaining balance: {_peso(booking.balance)}\n\n"
        f"Thank you!\n{company}\n"
    )
    return sms, subject, body


def build_booking_cancelled_messages(customer, car, booking) -> tuple[str, str, str]:
    company = settings.COMPANY_NAME
    sms = (f"Hi {customer.first_name}! Your booking for {car.display_name} ({_stay(booking)}) "
           f"has been cancelled. Any applicable refunds will be processed shortly. - {company}")
    subject = f"Booking Cancelled - {car.display_name}"
    body = (
        f"Hi {customer.first_name},\n\n"
        f"Your booking #{booking.id} for the {car.display_name} ({_stay(booking)}) has been cancelled.\n"
        + (f"Reason: {booking.cancellation_reason}\n" if booking.cancellation_reason else "")
        + f"\nAny applicable refunds will be processed shortly.\n{company}\n"
    )
    return sms, subject, body


def build_return_reminder_messages(customer, car, booking) -> tuple[str, str, str]:
    company = settings.COMPANY_NAME
    sms = (f"Hi {customer.first_name}! Reminder: the {car.display_name} is due back today "
           f"({booking.end_date:%b %d, %Y}). Booking ID: {booking.id}. - {company}")
    subject = f"Return Reminder - {car.display_name} due today"
    body = (
        f"Hi {customer.first_name},\n\n"
        f"This is a reminder that the {car.display_name} from booking #{booking.id} "
        f"is due back today, {booking.end_date:%b %d, %Y}.\n\n"
        f"Late returns are charged the overdue fee.\n{company}\n"
    )
    return sms, subject, body


class NotificationDispatcher:
    def __init__(self, config=settings):
        self.config = config

    async def send_sms(self, number: str, text: str) -> DispatchResult:
        if not self.config.SMS_ENABLED:
            logger.info(f"[NOTIFY] SMS not configured — simulated send to {number}")
            return DispatchResult(True, CHANNEL_SMS, simulated=True,
                                  message_id=f"sim_sms_{datetime.utcnow():%Y%m%d%H%M%S%f}")
        try:
            message_id = await self._post_sms(number, text)
            logger.info(f"[NOTIFY] SMS sent to {number} (id={message_id})")
            return DispatchResult(True, CHANNEL_SMS, message_id=message_id)
        except ExternalDispatchError as e:
            logger.warning(f"[NOTIFY] SMS to {number} failed: {e.detail}")
            return DispatchResult(False, CHANNEL_SMS, error=e.detail)

    async def _post_sms(self, number: str, text: str) -> str:
        payload = {
            "apikey": self.config.SMS_API_KEY,
            "number": number,
            "message": text,
            "sendername": self.config.SMS_SENDER_NAME,
        }
        try:
            async with httpx.AsyncClient(timeout=self.config.NOTIFICATION_TIMEOUT_SECONDS) as client:
                response = await client.post(self.config.SMS_API_URL, data=payload)
        except httpx.HTTPError as e:
            raise ExternalDispatchError(CHANNEL_SMS, f"SMS gateway unreachable: {e}") from e

        if response.status_code != 200:
            raise ExternalDispatchError(CHANNEL_SMS, f"SMS gateway returned HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise ExternalDispatchError(CHANNEL_SMS, "SMS gateway returned a non-JSON body") from e
        if isinstance(data, list) and data and data[0].get("message_id"):
            return str(data[0]["message_id"])
        raise ExternalDispatchError(CHANNEL_SMS, f"SMS gateway rejected message: {data}")

    async def send_email(self, address: str, subject: str, body: str) -> DispatchResult:
        if not self.config.EMAIL_ENABLED:
            logger.info(f"[NOTIFY] Email not configured — simulated send to {address}: {subject}")
            return DispatchResult(True, CHANNEL_EMAIL, simulated=True,
                                  message_id=f"sim_email_{datetime.utcnow():%Y%m%d%H%M%S%f}")
        message = EmailMessage()
        message["From"] = self.config.EMAIL_FROM or self.config.SMTP_USER
        message["To"] = address
        message["Subject"] = subject
        message.set_content(body)
        try:
            await asyncio.to_thread(self._deliver_smtp, message)
            logger.info(f"[NOTIFY] Email sent to {address}")
            return DispatchResult(True, CHANNEL_EMAIL)
        except ExternalDispatchError as e:
            logger.warning(f"[NOTIFY] Email to {address} failed: {e.detail}")
            return DispatchResult(False, CHANNEL_EMAIL, error=e.detail)

    def _deliver_smtp(self, message: EmailMessage):
        try:
            with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT,
                              timeout=self.config.NOTIFICATION_TIMEOUT_SECONDS) as smtp:
                smtp.starttls()
                smtp.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise ExternalDispatchError(CHANNEL_EMAIL, f"SMTP delivery failed: {e}") from e

    async def send_notice(self, customer, sms_text: str, subject: str, body: str) -> CustomerNotice:
        """
        Send one notice over the customer's preferred channel(s).
        With both channels the sends run concurrently and both are awaited.
        Preference 0 (or unknown) sends nothing and returns an empty notice.
        """
        channels = PREFERENCE_CHANNELS.get(customer.notification_preference, ())

        sends = []
        notice = CustomerNotice()
        for channel in channels:
            if channel == CHANNEL_SMS:
                if customer.contact_no:
                    sends.append(self.send_sms(customer.contact_no, sms_text))
                else:
                    notice.results.append(DispatchResult(False, CHANNEL_SMS, error="No contact number"))
            elif channel == CHANNEL_EMAIL:
                if customer.email:
                    sends.append(self.send_email(customer.email, subject, body))
                else:
                    notice.results.append(DispatchResult(False, CHANNEL_EMAIL, error="No email"))

        for outcome in await asyncio.gather(*sends, return_exceptions=True):
            if isinstance(outcome, Exception):
                logger.error(f"[NOTIFY] Unexpected dispatch error for customer {customer.id}: {outcome}")
                notice.results.append(DispatchResult(False, "unknown", error=str(outcome)))
            else:
                notice.results.append(outcome)
        return notice

    async def notify_availability(self, customer, car) -> CustomerNotice:
        return await self.send_notice(customer, *build_availability_messages(customer, car))

    async def notify_booking_created(self, customer, car, booking) -> CustomerNotice:
        return await self.send_notice(customer, *build_booking_created_messages(customer, car, booking))

    async def notify_booking_confirmed(self, customer, car, booking) -> CustomerNotice:
        return await self.send_notice(customer, *build_booking_confirmed_messages(customer, car, booking))

    async def notify_payment_received(self, customer, car, booking, payment) -> CustomerNotice:
        return await self.send_notice(customer, *build_payment_received_messages(customer, car, booking, payment))

    async def notify_booking_cancelled(self, customer, car, booking) -> CustomerNotice:
        return await self.send_notice(customer, *build_booking_cancelled_messages(customer, car, booking))

    async def notify_return_reminder(self, customer, car, booking) -> CustomerNotice:
        return await self.send_notice(customer, *build_return_reminder_messages(customer, car, booking))
