"""Composer manifest and lock file handling."""
