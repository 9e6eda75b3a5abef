"""Customer authentication package."""
from .session import AuthResult, AuthSession, Customer

__all__ = ["AuthResult", "AuthSession", "Customer"]
