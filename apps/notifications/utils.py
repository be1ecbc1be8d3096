import logging
import re
from django.conf import settings
from django.core.mail import send_mail
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client as TwilioClient
from .models import Notification

logger = logging.getLogger(__name__)

PHONE_NUMBER_PATTERN = re.compile(r'^\+\d{9,15}$')


def _send_email(user, subject, email_message):
    if not user.email:
        return
    try:
        send_mail(
            subject=subject,
            message=email_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
            fail_silently=False,
        )
        logger.info(f"Email notification sent to {user.email}")
    except Exception as e:
        logger.error(f"Failed to send email to {user.email}: {str(e)}")


def send_notification(user, subject, email_message, sms_message):
    """
    Send notifications to users via email and SMS.

    SMS goes out only when Twilio is configured and the user has a valid
    E.164 phone number; a failed SMS falls back to email.
    """
    _send_email(user, subject, email_message)

    if not user.phone_number or not settings.TWILIO_ACCOUNT_SID:
        return
    if not PHONE_NUMBER_PATTERN.match(user.phone_number):
        logger.warning(f"Invalid phone number format for user {user.id}: {user.phone_number}")
        return
    try:
        twilio_client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        twilio_client.messages.create(
            body=sms_message,
            from_=settings.TWILIO_PHONE_NUMBER,
            to=user.phone_number
        )
        logger.info(f"SMS notification sent to {user.phone_number}")
    except TwilioRestException as e:
        logger.error(f"Failed to send SMS to {user.phone_number}: {str(e)}")
        _send_email(user, subject, email_message)


def notify(recipient, title, message, type='general', sender_id=None, related_job=None, related_payment=None):
    """Store an in-app notification and deliver it by email/SMS; failures are logged."""
    try:
        notification = Notification.objects.create(
            recipient=recipient,
            sender_id=sender_id,
            title=title,
            message=message,
            type=type,
            related_job=related_job,
            related_payment=related_payment,
        )
    except Exception as e:
        logger.error(f"Failed to store notification for user {recipient.id}: {str(e)}")
        return None

    email_message = (
        f"Dear {recipient.display_name},\n\n"
        f"{message}\n\n"
        f"Best regards,\nBelimuno Jobs Team"
    )
    send_notification(recipient, title, email_message, message)
    return notification
