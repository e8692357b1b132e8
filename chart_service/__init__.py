"""Chart plugin registry and rendering factory service."""
