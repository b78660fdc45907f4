"""Business logic for the catalog pipeline."""
