"""Core building blocks: settings, database base classes and exceptions."""
