"""Caller authentication for the JSON API."""
