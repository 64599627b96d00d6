"""Composite scoring: band normalization, penalties, weighting and factor ranking."""
