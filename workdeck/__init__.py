"""WorkDeck authentication and onboarding service."""

__version__ = "0.1.0"
