"""REST API routers for the label registry."""
