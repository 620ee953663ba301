"""Settings and timezone helpers shared by the parser modules."""
