"""hearth: a local tool-using agent core."""

__version__ = "0.1.0"
