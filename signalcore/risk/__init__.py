"""Risk layer — stop-loss / take-profit levels and trade resolution."""
