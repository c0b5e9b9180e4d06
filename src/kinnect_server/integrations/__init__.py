"""External fitness platform integrations."""
