"""HTTP API layer: route table, dependencies, and route modules."""
