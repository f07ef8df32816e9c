"""Plugins for the bundled governance projects."""
