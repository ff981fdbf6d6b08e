"""Product health checks and meal quality scoring."""
