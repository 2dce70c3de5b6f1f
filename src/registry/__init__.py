"""Artifact registries."""
