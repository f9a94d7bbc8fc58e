"""Sealed Age operator — materializes age-encrypted SealedAge resources into Secrets."""

__version__ = "0.1.0"
