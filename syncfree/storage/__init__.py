"""Credential store and object-storage client."""
