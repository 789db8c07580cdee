"""Funding-rate sentiment candlestick feed."""
