"""Remote package registry clients."""
