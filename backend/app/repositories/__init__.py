from app.repositories.identity_repository import IdentityRepository

__all__ = ["IdentityRepository"]
