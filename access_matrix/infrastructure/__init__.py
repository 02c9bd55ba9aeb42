"""Infrastructure layer: persistence and audit services."""
