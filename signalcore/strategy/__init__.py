"""Strategy layer — indicators, patterns, scoring and the live evaluation path."""
