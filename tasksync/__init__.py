"""TaskSync: task/reward marketplace with offline-friendly sync."""
