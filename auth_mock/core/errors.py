"""Error taxonomy shared by both endpoints.

Every failure a caller can trigger is one of these.  The handlers in
auth_mock.main render them as plain text with the class's status code, so
endpoint and service code only ever raise, never build responses.

  InvalidRequest      missing/malformed parameter, wrong grant type
  SessionNotFound     unknown, already redeemed, or expired code
  VerificationFailed  PKCE, redirect_uri, or client credential mismatch
  StorageError        the session store backend failed

SessionNotFound has one message for all three causes so a
caller cannot probe whether a code was ever issued.
"""

from __future__ import annotations


class AuthMockError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(AuthMockError):
    pass


class SessionNotFound(AuthMockError):
    def __init__(self) -> None:
        super().__init__("Auth session not found for the given code.")


class VerificationFailed(AuthMockError):
    pass


class StorageError(AuthMockError):
    # Reported as 400 like every other failure; the store is test scaffolding.
    pass
