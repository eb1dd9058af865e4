"""Domain layer: models, built-in catalog and pure simulation services."""
