"""Small numeric helpers shared by the engine."""
