"""Meeting transcript to auto-graded quiz form pipeline."""

__version__ = "0.1.0"
