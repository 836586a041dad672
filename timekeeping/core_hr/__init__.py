"""Core HR module — read-only employee directory."""

from timekeeping.core_hr.models import Employee

__all__ = ["Employee"]
