"""linkauth — local + OAuth sign-in with one unified user identity.

Users can sign up with email/password, sign in with an OAuth provider,
or both. Either path resolves to the same user record, and a server-side
session carries the signed-in identity across requests.
"""

__version__ = "0.1.0"
