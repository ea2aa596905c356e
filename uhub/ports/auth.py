from typing import Protocol


class PasswordHasherPort(Protocol):
    def hash_password(self, password: str) -> str: ...

    def verify_password(self, plain: str, hashed: str) -> bool: ...

    def hash_token(self, token: str) -> str:
        """Hash a high-entropy token (SHA256) for storage."""
        ...
