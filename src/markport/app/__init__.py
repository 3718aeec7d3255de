"""Application services for markport."""
