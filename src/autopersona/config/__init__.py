"""Configuration: settings, sub-configs, paths."""
