"""AI product storyboard studio."""

__version__ = "0.1.0"
