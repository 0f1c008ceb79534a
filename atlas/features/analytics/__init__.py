"""Analytics snapshots over activity, query, document and team metric records."""
