"""
Help Request Background Jobs

Scheduled task for upcoming sessions:
1. Email both participants a reminder before a scheduled session starts

Design Principles:
- The job is idempotent: a session is stamped with reminder_sent_at once
  processed and is never picked up again
- The job handles its own database sessions
- Individual session failures don't stop the job

Schedule:
- Runs hourly; a session inside the reminder window gets its reminder
  within an hour of entering it
- Can be triggered manually via the debug job endpoints
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from seniorhelp.core.config import settings
from seniorhelp.core.database import async_session_maker
from seniorhelp.core.email import send_session_reminder
from seniorhelp.core.scheduler import register_job
from seniorhelp.modules.help_requests import repository
from seniorhelp.modules.help_requests.models import HelpSession, SessionStatus
from seniorhelp.modules.users.repository import ProfileRepository

logger = logging.getLogger(__name__)

JOB_ID_SESSION_REMINDERS = "help_requests_session_reminders"


async def _process_session_reminder(session: HelpSession) -> dict[str, Any]:
    """Email both participants of one session and stamp it."""
    async with async_session_maker() as db:
        current = await repository.get_session(db, session.id, refresh=True)
        if current is None or current.status != SessionStatus.SCHEDULED:
            logger.info(f"Skipping reminder for session {session.id}: no longer scheduled")
            return {"session_id": str(session.id), "status": "skipped", "emails_sent": 0}
        session = current

        request = await repository.get_by_id(db, session.request_id)
        title = request.title if request else "your help session"

        emails_sent = 0
        for participant_id in (session.senior_id, session.student_id):
            participant = await ProfileRepository.get_profile(db, participant_id)
            if not participant or not participant.email:
                continue

            sent = await send_session_reminder(
                to_email=participant.email,
                recipient_name=participant.full_name,
                request_title=title,
                scheduled_time=session.scheduled_time,
                meeting_link=session.meeting_link,
                session_id=str(session.id),
            )
            if sent:
                emails_sent += 1
            else:
                logger.error(f"Failed to send reminder for session {session.id} to {participant_id}")

        # Stamp even if an email failed, so the job does not retry every hour
        await repository.mark_reminder_sent(db, session.id)
        await db.commit()

    logger.info(f"Processed reminder for session {session.id} ({emails_sent} email(s))")
    return {"session_id": str(session.id), "status": "sent", "emails_sent": emails_sent}


async def send_session_reminders(now: datetime | None = None) -> dict[str, Any]:
    """
    Send reminders for scheduled sessions starting within the next
    settings.session_reminder_hours hours.

    Returns:
        Dict with executed_at, reminders (per-session results),
        total_processed and total_errors
    """
    executed_at = now or datetime.now(UTC)
    window_end = executed_at + timedelta(hours=settings.session_reminder_hours)

    logger.info(f"Starting session reminder job for sessions before {window_end.isoformat()}")

    results: dict[str, Any] = {
        "executed_at": executed_at.isoformat(),
        "reminders": [],
        "total_processed": 0,
        "total_errors": 0,
    }

    async with async_session_maker() as db:
        sessions = await repository.get_sessions_needing_reminder(
            db, starts_after=executed_at, starts_before=window_end
        )

    logger.info(f"Found {len(sessions)} sessions needing a reminder")

    for session in sessions:
        try:
            result = await _process_session_reminder(session)
            results["reminders"].append(result)
            results["total_processed"] += 1
        except Exception as e:
            logger.error(f"Error processing reminder for session {session.id}: {e}", exc_info=True)
            results["reminders"].append(
                {"session_id": str(session.id), "status": "error", "error": str(e)}
            )
            results["total_errors"] += 1

    logger.info(
        f"Session reminder job completed. "
        f"Processed: {results['total_processed']}, Errors: {results['total_errors']}"
    )
    return results


def register_help_request_jobs() -> None:
    """Register the help request background jobs. Call before start_scheduler()."""
    register_job(
        job_id=JOB_ID_SESSION_REMINDERS,
        func=send_session_reminders,
        trigger=IntervalTrigger(hours=1),
    )
    logger.info(f"Registered job: {JOB_ID_SESSION_REMINDERS} (interval: 1 hour)")
