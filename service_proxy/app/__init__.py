"""Tekton Hub proxy application: translators, cache, upstream client and routes."""
