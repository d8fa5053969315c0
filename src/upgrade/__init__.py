"""Upgrade workflow orchestration."""
