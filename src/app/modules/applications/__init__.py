"""
Applications module - Student applications to programs.
"""

from app.modules.applications.models import Application, ApplicationStatus

__all__ = ["Application", "ApplicationStatus"]
