"""Recipe Genius - AI recipe generation service."""

__version__ = "1.0.0"
