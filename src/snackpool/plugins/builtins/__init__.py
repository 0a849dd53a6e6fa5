"""Plugins shipped with snackpool and registered on every event bus."""
