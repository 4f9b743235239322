"""
notify.py
Reminder and receipt text, plus the SMS / printer capabilities they are handed to.

The billing code never talks to a device: callers pass in something that
satisfies TextMessageSender or ReceiptPrinter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from urllib.parse import quote

import africastalking

from billing import Renewal
from config import Settings
from models import Customer

logger = logging.getLogger(__name__)

RULE = "-" * 41
BORDER = "=" * 40


class TextMessageSender(Protocol):
    def send(self, phone: str, message: str) -> None: ...


class ReceiptPrinter(Protocol):
    def print_receipt(self, text: str) -> None: ...


def format_money(amount: float, currency: str) -> str:
    return f"{currency} {amount:,.0f}"


def reminder_message(customer: Customer, settings: Settings) -> str:
    return (
        f"Dear {customer.name}, we would like to remind you that the amount "
        f"{customer.monthly_rate:.0f} was due for payment. To avoid service interruption, "
        f"please forward the payment. Regards, {settings.company}"
    )


def bulk_reminder_message(settings: Settings) -> str:
    return (
        f"Dear Customer, this is a reminder that your {settings.company} subscription is set "
        f"to expire tomorrow. Please pay to ensure uninterrupted service. Thank you, {settings.company}."
    )


def bulk_reminder_preview(customers: list[Customer], settings: Settings) -> str:
    lines = []
    for n, c in enumerate(customers, start=1):
        lines.append(
            f"{n}. {c.name} ({c.customer_code}) - Expiring tomorrow, "
            f"{c.expiry_date.strftime('%b')} {c.expiry_date.day} for {format_money(c.monthly_rate, settings.currency)}."
        )
    return "\n".join(lines)


def sms_uri(phones: list[str], body: str) -> str:
    """sms: link addressed to every phone; support for many recipients varies by device."""
    return f"sms:{','.join(p.strip() for p in phones)}?body={quote(body)}"


def receipt_text(renewal: Renewal, package_name: str, settings: Settings, now: datetime | None = None) -> str:
    now = now or datetime.now()
    c = renewal.customer
    old = renewal.old_expiry
    return "\n".join([
        BORDER,
        settings.company.center(40).rstrip(),
        "PAYMENT RECEIPT".center(40).rstrip(),
        BORDER,
        f"Customer: {c.name}",
        f"ID: {c.customer_code}",
        f"Package: {package_name}",
        RULE,
        f"Amount Paid:  {format_money(renewal.amount, settings.currency)}",
        RULE,
        f"Date: {now.strftime('%Y-%m-%d %H:%M')}",
        f"Expiry Date (old): {old.strftime('%b')} {old.day}, {old.year}",
        "Status: PAID (Thank You!)",
        RULE,
        "Online Payments:",
        f" {settings.payment_channels}",
        f"Contact: {settings.contact}",
        BORDER,
        "Thank you for your payment!",
        "",
    ])


def print_receipt(printer: ReceiptPrinter | None, text: str) -> str | None:
    """
    Returns None on success or an error message for the user.
    A failed print never affects the renewal that produced the receipt.
    """
    if printer is None:
        return "Printer not connected."
    try:
        printer.print_receipt(text)
    except Exception as e:  # device errors come in many shapes
        logger.error("Print failed: %s", e, exc_info=True)
        return f"Print failed: {e}"
    return None


@dataclass
class DispatchResult:
    sent: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def send_reminders(customers: list[Customer], sender: TextMessageSender, settings: Settings) -> DispatchResult:
    """Send one reminder per customer; a failed send is logged and the loop continues."""
    result = DispatchResult()
    for c in customers:
        try:
            sender.send(c.phone, reminder_message(c, settings))
        except Exception as e:
            logger.error("Failed to send SMS to %s: %s", c.name, e)
            result.failed[c.customer_code] = str(e)
        else:
            logger.info("SMS sent to %s", c.name)
            result.sent.append(c.customer_code)
    return result


class AfricasTalkingSender:
    """TextMessageSender backed by the Africa's Talking SMS API."""

    def __init__(self, username: str, api_key: str, sender_id: str | None = None):
        if not username or not api_key:
            raise ValueError("Africa's Talking credentials are not configured")
        self.sender_id = sender_id
        africastalking.initialize(username=username, api_key=api_key)
        self.sms = africastalking.SMS

    @classmethod
    def from_settings(cls, settings: Settings) -> "AfricasTalkingSender":
        return cls(settings.at_username, settings.at_api_key, settings.at_sender_id)

    def send(self, phone: str, message: str) -> None:
        response = self.sms.send(message, [phone], sender_id=self.sender_id)
        recipient = response["SMSMessageData"]["Recipients"][0]
        if recipient["status"] != "Success":
            raise RuntimeError(recipient["status"])
