"""Configuration layer — settings, TOML discovery, rule-set files, logging."""
