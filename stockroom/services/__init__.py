"""Service layer: endpoint factory and authentication."""
