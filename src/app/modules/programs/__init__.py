"""
Programs module - Academic programs and program admin assignment.
"""

from app.modules.programs.models import Program

__all__ = ["Program"]
