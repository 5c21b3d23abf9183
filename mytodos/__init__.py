"""Personal todo list API with AI suggestions."""

__version__ = "1.0.0"
