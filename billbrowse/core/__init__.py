"""Framework-independent record browser state machine."""
