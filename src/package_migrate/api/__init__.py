"""REST API client and error types."""
