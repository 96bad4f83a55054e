"""Version resolution and the persistent resolution cache."""
