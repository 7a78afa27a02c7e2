"""Authentication: token storage, verification and the OAuth login flow."""
