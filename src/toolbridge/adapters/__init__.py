"""Backend adapters. Each exposes a client, its tools and ``build_registry``."""
