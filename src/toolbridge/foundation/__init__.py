"""Foundation layer: errors, configuration, tool registry."""
