"""Configuration layer: user settings discovery and logging setup."""
