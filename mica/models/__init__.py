"""Result models for alignment introspection."""
