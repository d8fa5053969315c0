"""Package catalog clients.

This package provides the Packagist client used to look up published
versions of the core packages.
"""
