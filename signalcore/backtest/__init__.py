"""Backtest simulator — bar-by-bar replay of the live pipeline."""
