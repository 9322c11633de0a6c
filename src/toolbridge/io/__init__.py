"""I/O layer: stdio transport, response cache, REST client."""
