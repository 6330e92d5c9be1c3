"""User account backend: registration, sessions and profile media."""

__version__ = "1.0.0"
