import logging
import re

from django.conf import settings
from django.core.mail import send_mail
from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

# Sent after the approval of a borrow request has been committed.
borrow_approved = Signal()


@receiver(borrow_approved)
def send_due_date_notification(sender, record, **kwargs):
    user = record.user
    if not user.email or not EMAIL_PATTERN.match(user.email):
        logger.warning("Skipping borrow confirmation for user %s: missing or invalid email", user.pk)
        return

    subject = f'Borrow Confirmation: {record.book.title}'
    message = (
        f"Dear {user.name or user.username},\n\n"
        f"Your request to borrow '{record.book.title}' has been approved.\n"
        f"Due Date: {record.due_date:%Y-%m-%d}\n"
        f"Please return it by the due date.\n"
    )
    send_mail(
        subject,
        message,
        settings.DEFAULT_FROM_EMAIL,
        [user.email],
        fail_silently=False,
    )
