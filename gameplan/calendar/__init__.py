"""Calendar / Game Plan aggregation engine."""
