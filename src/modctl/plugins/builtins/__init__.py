"""Built-in observers shipped with modctl."""
