"""Feature modules: help requests, users and shared building blocks."""
