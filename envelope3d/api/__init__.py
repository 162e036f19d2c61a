"""REST API for scene descriptions."""
