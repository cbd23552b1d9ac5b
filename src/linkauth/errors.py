"""Exception hierarchy.

Learn: Expected, user-correctable outcomes (bad password, duplicate email)
are NOT exceptions — they are Rejected outcomes (see auth/outcome.py).
Exceptions are reserved for things the caller can't fix:
store failures, broken OAuth handshakes, inconsistent identities, bad config.
"""


class LinkAuthError(Exception):
    """Base class for all linkauth errors."""


class StoreError(LinkAuthError):
    """The credential store failed (connectivity, unexpected constraint)."""


class UniqueViolationError(StoreError):
    """A write violated a uniqueness constraint (email or external id).

    Learn: This is the *expected* race — two requests inserting the same
    email at once. Callers turn it into a 409 or retry as a lookup.
    """


class MissingEmailError(LinkAuthError):
    """An external identity arrived without an email address."""


class IdentityConflictError(LinkAuthError):
    """The user owning this email is already linked to another external id."""


class OAuthError(LinkAuthError):
    """The OAuth handshake with the provider failed."""


class ConfigurationError(LinkAuthError):
    """Required configuration is missing. Fatal at startup."""
