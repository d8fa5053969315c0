"""External dependency resolver invocation."""
