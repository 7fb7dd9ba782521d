"""Authentication: credentials, passwords, session verification, token issuance."""
