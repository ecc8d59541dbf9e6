"""modctl — module lifecycle orchestration for in-process extension units."""

__version__ = "0.1.0"
