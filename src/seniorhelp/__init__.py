"""Senior Help API."""
