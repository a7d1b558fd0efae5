"""Core modules for autodeploy."""
