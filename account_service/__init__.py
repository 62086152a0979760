"""User account service: registration, login, current user and profile management."""
