"""Output layer — Rich rendering and JSON formatting of operation reports."""
