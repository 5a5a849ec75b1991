# =================================================================
#   NPC Smart Report - Email Service
#   SMTP delivery for student reminders
# =================================================================

import smtplib
import html as html_module
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from datetime import datetime
import logging

from config import Config

logger = logging.getLogger(__name__)

REMINDER_TYPES = {
    'report_submission': 'Report Submission Reminder',
    'review_pending': 'Pending Review Reminder',
    'general': 'General Reminder',
}

# Pre-filled subject/message per reminder type
REMINDER_TEMPLATES = {
    'report_submission': {
        'subject': 'Reminder: Report Submission Due',
        'message': ('This is a friendly reminder that your report submission is due soon. '
                    'Please ensure you complete and submit your report by the deadline.\n\n'
                    'Thank you for your cooperation.')
    },
    'review_pending': {
        'subject': 'Action Required: Report Review Pending',
        'message': ('You have pending reports that require your review. Please log in to the '
                    'system and complete the review process.\n\n'
                    'Your prompt attention is appreciated.')
    },
    'general': {'subject': '', 'message': ''},
}


def send_email(to_email, subject, html_content):
    """
    Core email sending function - handles all SMTP logic
    Returns: (success: bool, error_msg: str or None)
    """
    if not to_email or '@' not in to_email:
        logger.warning(f"Invalid email address: {to_email}")
        return False, "Invalid email address"

    # Test mode - log instead of sending
    if Config.EMAIL_TEST_MODE:
        logger.info(f"[REMINDER] TEST MODE - To: {to_email} - Subject: {subject}")
        return True, None

    try:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{Config.SENDER_NAME} <{Config.SENDER_EMAIL}>"
        msg['To'] = to_email
        msg.attach(MIMEText(html_content, 'html'))

        server = smtplib.SMTP(Config.SMTP_SERVER, Config.SMTP_PORT, timeout=10)
        try:
            server.starttls()
            server.login(Config.SENDER_EMAIL, Config.SENDER_PASSWORD)
            server.send_message(msg)
        finally:
            server.quit()

        logger.info(f"Email sent successfully to {to_email}")
        return True, None

    except smtplib.SMTPAuthenticationError:
        error_msg = "SMTP authentication failed - check the sender credentials"
        logger.error(f"Email failed - {error_msg}")
        return False, error_msg

    except smtplib.SMTPException as e:
        error_msg = f"SMTP error: {str(e)}"
        logger.error(f"Email failed to {to_email}: {error_msg}")
        return False, error_msg

    except OSError as e:
        error_msg = f"Connection error: {str(e)}"
        logger.error(f"Email failed to {to_email}: {error_msg}")
        return False, error_msg


def render_reminder(recipient_name, reminder_type, message, sender_name):
    """Builds the HTML body of a reminder email."""
    heading = REMINDER_TYPES.get(reminder_type, REMINDER_TYPES['general'])
    body = html_module.escape(message).replace('\n', '<br>')

    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: Arial, sans-serif; background: #f5f5f5; margin: 0; padding: 20px; }}
            .container {{ background: white; max-width: 600px; margin: 0 auto; border-radius: 8px; overflow: hidden; }}
            .header {{ background: #3b82f6; color: white; padding: 24px; text-align: center; }}
            .header h1 {{ margin: 0; font-size: 22px; }}
            .content {{ padding: 24px; font-size: 15px; color: #333; }}
            .footer {{ background: #f8f9fa; padding: 16px; text-align: center; color: #666; font-size: 12px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header"><h1>{heading}</h1></div>
            <div class="content">
                <p>Hello {html_module.escape(recipient_name)},</p>
                <p>{body}</p>
                <p style="color: #666;">Sent by {html_module.escape(sender_name)}</p>
            </div>
            <div class="footer">
                <p><strong>NPC Smart Report</strong></p>
                <p>Generated on {datetime.now().strftime('%d %B %Y at %I:%M %p')}</p>
            </div>
        </div>
    </body>
    </html>
    """


def send_reminder(recipient, reminder_type, subject, message, sender_name):
    """
    Send one reminder.

    Args:
        recipient: dict with 'name' and 'email'.

    Returns: (success: bool, error_msg: str or None)
    """
    html = render_reminder(recipient.get('name', ''), reminder_type, message, sender_name)
    return send_email(recipient.get('email'), subject, html)


def send_reminders(recipients, reminder_type, subject, message, sender_name):
    """
    Send the same reminder to several recipients.

    Returns:
        dict: {'sent': [emails], 'failed': [{'email': ..., 'error': ...}]}
    """
    result = {'sent': [], 'failed': []}
    for recipient in recipients:
        success, error = send_reminder(recipient, reminder_type, subject, message, sender_name)
        if success:
            result['sent'].append(recipient.get('email'))
        else:
            result['failed'].append({'email': recipient.get('email'), 'error': error})

    logger.info(f"[REMINDER] Sent {len(result['sent'])}/{len(recipients)} - Type: {reminder_type}")
    return result
