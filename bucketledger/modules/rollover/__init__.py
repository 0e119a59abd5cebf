"""Monthly rollover orchestration and its audit trail."""
