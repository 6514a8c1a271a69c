"""Movie and actor metadata providers for catalogue sites."""

__version__ = "0.1.0"