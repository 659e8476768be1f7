"""Reminder message templates."""

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from plotdesk.core.entities.notification import ensure_utc
from plotdesk.core.entities.reminder import Reminder

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}

DEFAULT_COMPANY_NAME = "SOMANING KOLI PROPERTY"

# Calendar dates in customer messages
BUSINESS_TIMEZONE = ZoneInfo("Asia/Kolkata")


def group_indian(number: int) -> str:
    """Digit grouping of the Indian system: 1,50,000 and 12,34,56,789."""
    digits = str(abs(number))
    sign = "-" if number < 0 else ""
    if len(digits) <= 3:
        return sign + digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return sign + ",".join(groups + [tail])


def format_amount(amount: float, currency: str = "INR") -> str:
    """Format an amount with its currency symbol; paise only when present."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    rupees = int(amount)
    paise = round((amount - rupees) * 100)
    if paise == 100:
        rupees, paise = rupees + 1, 0
    text = group_indian(rupees)
    if paise:
        text += f".{paise:02d}"
    return f"{symbol}{text}"


def format_date(value: datetime, tz: tzinfo = BUSINESS_TIMEZONE) -> str:
    """dd/mm/yyyy of the calendar day in the given timezone."""
    return ensure_utc(value).astimezone(tz).strftime("%d/%m/%Y")


def format_reminder_message(
    reminder: Reminder,
    company_name: str = DEFAULT_COMPANY_NAME,
    tz: tzinfo = BUSINESS_TIMEZONE,
) -> str:
    """Render the customer-facing reminder text."""
    due = format_date(reminder.due_date, tz)
    reference = reminder.plot_number or reminder.transaction_id

    lines = [
        "🏠 *PROPERTY REMINDER*",
        "",
        f"Dear {reminder.customer_name},",
        "",
        f"📅 Due Date: {due}",
    ]
    if reference:
        label = "Plot" if reminder.plot_number else "Reference"
        lines.append(f"🏗️ {label}: {reference}")
    if reminder.amount:
        lines.append(f"💰 Amount: {format_amount(reminder.amount, reminder.currency)}")

    lines.append("")
    lines.append(f"⚠️ *{reminder.description or reminder.title}*")
    lines.append("")
    lines.append("Please make the payment on time to avoid any inconvenience.")
    lines.append("")
    lines.append("📞 For queries, contact us.")
    lines.append("")
    lines.append(f"*{company_name}*")
    return "\n".join(lines)


def format_test_message(customer_name: str, company_name: str = DEFAULT_COMPANY_NAME) -> str:
    """Render the channel test message."""
    return (
        "🧪 *TEST MESSAGE*\n\n"
        f"Hello {customer_name},\n\n"
        "This is a test notification from the property management system.\n\n"
        "If you received this, the notification service is working correctly!\n\n"
        f"*{company_name}*"
    )
