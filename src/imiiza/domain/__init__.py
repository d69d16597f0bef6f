"""Domain layer: workflow rules and ports, free of HTTP and persistence details."""
