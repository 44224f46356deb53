"""Application layer - ports, extraction primitives and use cases."""
