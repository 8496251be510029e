"""Classification metrics, reporting and experiment tracking."""
