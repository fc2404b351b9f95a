"""HTTP API for Galleria."""
