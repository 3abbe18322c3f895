"""Authentication and session handling.

Learn: One authentication path — username/email + password →
JWT access token (short-lived) + refresh token (long-lived, rotated,
one stored per account). Protected routes resolve the access token
to a User via the get_current_user dependency.
"""
