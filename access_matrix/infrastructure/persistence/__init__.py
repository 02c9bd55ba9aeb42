"""Persistence: engine/session management, ORM models, repositories and migrations."""
