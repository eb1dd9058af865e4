"""Application layer: run lifecycles and the stores they read from."""
