"""Pull-to-refresh gesture tracking for a pygame transaction feed."""
