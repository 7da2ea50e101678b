"""Session-level configuration for the memory temperature service."""
