"""
Exception types shared across the companion package.
"""


class CompanionError(Exception):
    """Base class for companion errors."""


class InvalidConversationKeyError(CompanionError):
    """A conversation key is missing one of its identifying fields."""


class ConfigurationError(CompanionError):
    """Required configuration is missing or invalid."""
