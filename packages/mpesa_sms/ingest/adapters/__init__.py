"""Source-specific adapters mapping exported SMS data to ``RawMessage``."""
