"""Hosting control panel: page scripts, lifecycle events and filesystem plugins."""
