"""Bundled case catalogues."""
