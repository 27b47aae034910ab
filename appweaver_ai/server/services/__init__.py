"""Service wiring shared by the HTTP routes."""
