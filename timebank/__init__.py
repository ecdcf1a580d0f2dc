"""TimeBank: multi-timer persistence and energy accounting."""

__version__ = "0.1.0"
