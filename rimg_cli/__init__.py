"""Command line entrypoints for the registry image resource."""
