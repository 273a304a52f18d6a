"""HTTP resources served alongside the panel export (metric-name parsing)."""
