"""
Users module - Profiles and student verification.
"""

from seniorhelp.modules.users.models import (
    Profile,
    StudentProfile,
    UserRole,
    VerificationStatus,
)
from seniorhelp.modules.users.repository import ProfileRepository

__all__ = ["Profile", "StudentProfile", "UserRole", "VerificationStatus", "ProfileRepository"]
