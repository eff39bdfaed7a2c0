"""
Email Service using Resend

Best-effort notifications for the help request workflow: claim, new session,
new chat message, cancellation and session reminders. Every sender returns
False on failure instead of raising; callers log and carry on.
"""

import asyncio
import logging
from datetime import datetime
from html import escape

import resend

from seniorhelp.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

EMAIL_FROM = settings.email_from
FRONTEND_URL = settings.frontend_url


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _render(heading: str, body_html: str, action_url: str | None, action_label: str) -> str:
    """Wrap a message body in the shared email layout. Inputs must already be escaped."""
    button = f'<a href="{action_url}" class="button">{action_label}</a>' if action_url else ""
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; font-size: 18px; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #2563eb; margin-bottom: 24px; }}
            .button {{ display: inline-block; background-color: #2563eb; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .info-box {{ background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{heading}</h1>
            {body_html}
            {button}
            <div class="footer">
                <p>Senior Dev Help - Technology help from student volunteers</p>
            </div>
        </div>
    </body>
    </html>
    """


def _format_time(value: datetime) -> str:
    return value.strftime("%A, %B %d at %H:%M UTC")


async def send_request_claimed(
    to_email: str,
    senior_name: str,
    student_name: str,
    request_title: str,
    request_id: str,
) -> bool:
    """Tell the senior a volunteer has claimed their request."""
    safe_senior_name = escape(senior_name)
    safe_student_name = escape(student_name)
    safe_title = escape(request_title)

    body = f"""
            <p>Hello {safe_senior_name},</p>
            <p>Good news! <strong>{safe_student_name}</strong> has offered to help with
            your request <strong>{safe_title}</strong>.</p>
            <p>They will message you shortly to find a time that works for you.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"A volunteer claimed your request: {safe_title}",
        html_content=_render(
            "Your Request Was Claimed",
            body,
            f"{FRONTEND_URL}/request/{request_id}",
            "View Request",
        ),
    )


async def send_session_scheduled(
    to_email: str,
    recipient_name: str,
    request_title: str,
    scheduled_time: datetime,
    duration_minutes: int,
    meeting_link: str | None,
    session_id: str,
) -> bool:
    """Send the meeting details of a newly scheduled session."""
    safe_name = escape(recipient_name)
    safe_title = escape(request_title)
    safe_link = escape(meeting_link) if meeting_link else None

    link_html = (
        f'<p>Meeting link: <a href="{safe_link}">{safe_link}</a></p>' if safe_link else ""
    )
    body = f"""
            <p>Hello {safe_name},</p>
            <p>A help session has been scheduled for <strong>{safe_title}</strong>.</p>
            <div class="info-box">
                <p><strong>When:</strong> {_format_time(scheduled_time)}</p>
                <p><strong>Length:</strong> {duration_minutes} minutes</p>
                {link_html}
            </div>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Session scheduled: {safe_title}",
        html_content=_render(
            "Session Scheduled",
            body,
            f"{FRONTEND_URL}/session/{session_id}",
            "View Session",
        ),
    )


async def send_new_message(
    to_email: str,
    recipient_name: str,
    sender_name: str,
    request_title: str,
    request_id: str,
) -> bool:
    """Notify a participant of a new chat message. The message text is not included."""
    safe_name = escape(recipient_name)
    safe_sender = escape(sender_name)
    safe_title = escape(request_title)

    body = f"""
            <p>Hello {safe_name},</p>
            <p><strong>{safe_sender}</strong> sent you a message about
            <strong>{safe_title}</strong>.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"New message from {safe_sender}",
        html_content=_render(
            "New Message",
            body,
            f"{FRONTEND_URL}/chat/{request_id}",
            "Open Chat",
        ),
    )


async def send_request_cancelled(
    to_email: str,
    recipient_name: str,
    request_title: str,
    reason: str | None = None,
) -> bool:
    """Tell the other participant that a request was cancelled."""
    safe_name = escape(recipient_name)
    safe_title = escape(request_title)

    reason_html = (
        f'<div class="info-box"><p><strong>Reason:</strong> {escape(reason)}</p></div>'
        if reason
        else ""
    )
    body = f"""
            <p>Hello {safe_name},</p>
            <p>The help request <strong>{safe_title}</strong> has been cancelled.
            Any scheduled session for it has been cancelled too.</p>
            {reason_html}
    """
    return await send_email(
        to_email=to_email,
        subject=f"Request cancelled: {safe_title}",
        html_content=_render("Request Cancelled", body, None, ""),
    )


async def send_session_reminder(
    to_email: str,
    recipient_name: str,
    request_title: str,
    scheduled_time: datetime,
    meeting_link: str | None,
    session_id: str,
) -> bool:
    """Remind a participant of an upcoming session."""
    safe_name = escape(recipient_name)
    safe_title = escape(request_title)
    safe_link = escape(meeting_link) if meeting_link else None

    link_html = (
        f'<p>Meeting link: <a href="{safe_link}">{safe_link}</a></p>' if safe_link else ""
    )
    body = f"""
            <p>Hello {safe_name},</p>
            <p>This is a reminder about your upcoming session for
            <strong>{safe_title}</strong>.</p>
            <div class="info-box">
                <p><strong>When:</strong> {_format_time(scheduled_time)}</p>
                {link_html}
            </div>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Reminder: session for {safe_title}",
        html_content=_render(
            "Upcoming Session",
            body,
            f"{FRONTEND_URL}/session/{session_id}",
            "View Session",
        ),
    )
