"""Star history aggregation for GitHub repositories."""
