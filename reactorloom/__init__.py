"""reactorloom: source-to-source migration of Reactor call sites."""

__version__ = "0.1.0"
