"""Domain layer: entities, value objects and storage algorithms."""
