"""Runtime configuration: environment settings, feature flags and packaged data files."""
