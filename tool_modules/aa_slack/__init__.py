"""Slack tool module."""
