"""Shared helpers: logging, HTTP and host facts."""
