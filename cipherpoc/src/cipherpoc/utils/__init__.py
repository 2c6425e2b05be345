"""Low-level helpers shared across cipherpoc."""
