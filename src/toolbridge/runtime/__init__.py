"""Runtime layer: dispatcher, stdio server, search chain, logging."""
