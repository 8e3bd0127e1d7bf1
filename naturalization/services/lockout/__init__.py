from naturalization.services.lockout.lockout_service import LockoutService

__all__ = ["LockoutService"]
