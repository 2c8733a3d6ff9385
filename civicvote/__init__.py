"""CivicVote: an online voting backend."""

__version__ = "1.0.0"
