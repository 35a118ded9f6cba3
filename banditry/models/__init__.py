"""Domain types: arms, their snapshots, and probe outcomes."""
