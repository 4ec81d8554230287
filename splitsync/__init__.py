"""splitsync — offline-first cache, outbox and conflict resolution for an expense-splitting app."""
