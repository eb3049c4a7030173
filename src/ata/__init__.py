"""ata - Ask the Terminal Anything."""

__version__ = "2.0.0"
