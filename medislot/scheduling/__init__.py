"""Pure scheduling rules: slot matching and lead-time policy."""
