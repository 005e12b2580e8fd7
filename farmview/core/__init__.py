"""Qt-free domain logic: entities, geometry, drawing modes and aggregates."""
