"""authlink: OAuth identity reconciliation and entity persistence."""
