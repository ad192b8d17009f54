"""Per-block signal processing: pitch estimation, onset guard, stability gate."""
