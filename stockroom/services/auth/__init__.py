from .auth_service import AuthService, CurrentUser

__all__ = ["AuthService", "CurrentUser"]
