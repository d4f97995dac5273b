"""
key_manager.py — Provider credential encryption
Provider API keys are stored in the database as Fernet blobs derived from SECRET_KEY
and decrypted only when a provider client is built.
"""

import base64
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from config import SECRET_KEY


class KeyManager:
    """Encrypts and decrypts provider API keys for DB storage."""

    def __init__(self, secret: str = SECRET_KEY):
        salt = b'workspace_memory_provider_keys'
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(secret.encode()))
        self.fernet = Fernet(key)

    def encrypt_key(self, plain_text_key: str) -> str:
        """Encrypts a string for DB storage."""
        return self.fernet.encrypt(plain_text_key.encode()).decode()

    def decrypt_key(self, encrypted_key: str) -> str:
        """Decrypts a string from the DB."""
        return self.fernet.decrypt(encrypted_key.encode()).decode()


# Singleton instance used by the Provider model
key_manager = KeyManager()
