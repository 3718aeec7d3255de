"""Packaged resources for markport: client page, script and JSON schemas."""
