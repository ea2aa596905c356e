import hashlib

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


class Argon2AuthAdapter:
    def __init__(self) -> None:
        self.ph = PasswordHasher()

    def hash_password(self, password: str) -> str:
        return str(self.ph.hash(password))

    def verify_password(self, plain: str, hashed: str) -> bool:
        try:
            self.ph.verify(hashed, plain)
            return True
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def hash_token(self, token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()
