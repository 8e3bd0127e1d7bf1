"""
State machine infrastructure for applicant flows.

This package provides the lockout flow that guards the application topic
pages while an applicant is in eligibility assessment.
"""

from .base import FlowMachine
from .lockout_flow import LockoutFlowMachine

__all__ = ["FlowMachine", "LockoutFlowMachine"]
