"""Account service: registration, login and refresh-token sessions."""

__version__ = "0.1.0"
