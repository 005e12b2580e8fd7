"""Backend access: REST client, repositories, list caches and geocoding."""
