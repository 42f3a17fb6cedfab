"""Exceptions raised by the authentication core."""


class LocalLoginError(Exception):
    """Base exception for locallogin"""


class CredentialStoreError(LocalLoginError):
    """Error reported by the credential store"""


class DuplicateUsernameError(CredentialStoreError):
    """Registration hit the UNIQUE constraint on users.username"""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username already exists: {username!r}")


class StoreUnavailableError(CredentialStoreError):
    """Connectivity or query failure. Fatal to the current request, never retried here."""
