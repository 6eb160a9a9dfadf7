"""Tech Bant Community forum backend."""
