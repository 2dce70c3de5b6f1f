"""Shared helpers: HTTP transport, logging and progress monitoring."""
