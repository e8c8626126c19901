"""Read-only verification of the account's security baseline services."""
