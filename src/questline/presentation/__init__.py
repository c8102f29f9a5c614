"""Presentation layers that turn engine outcomes into text."""
