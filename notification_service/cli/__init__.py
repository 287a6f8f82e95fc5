"""Command line interface for notification-service."""
