"""
Help Requests Module

Handles the help request lifecycle between seniors and student volunteers:
1. Senior posts a request (open)
2. A verified student claims it (claimed)
3. The student schedules a session (scheduled), which may be started (in_progress)
4. The senior signs off with duration and rating (completed), crediting
   the student's volunteer hours exactly once
5. Any participant or an admin may cancel before completion (cancelled)

API Endpoints:
- /requests - create, browse, claim, cancel, messages
- /sessions - schedule, start, sign-off, calendar export

Background Jobs (via APScheduler):
- send_session_reminders: Runs hourly, emails participants before a session
"""

from .jobs import register_help_request_jobs
from .router import router, sessions_router

__all__ = ["router", "sessions_router", "register_help_request_jobs"]
