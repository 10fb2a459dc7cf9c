"""Version information for BreachWatch."""

__version__ = "0.4.0"
