"""Phoning tracker: call status, notes and outreach flags for a restaurant campaign."""

__version__ = "0.2.0"
