"""HTTP adapter for the network harness."""
