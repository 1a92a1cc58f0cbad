"""Core credential, registry and migration components."""
