"""Authentication core.

Learn: Two ways in, one identity out:
1. Users → email/password → LocalAuthenticator
2. Users → OAuth provider → OAuthIdentityResolver (find / link / create)

Both resolve to the same User row, keyed by email, and both end in a
server-side session (SessionManager). AuthFacade ties them together.
"""
