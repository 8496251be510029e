"""Splitting, normalization, classifier adapters and model persistence."""
