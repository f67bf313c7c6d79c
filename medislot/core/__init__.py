"""Core configuration, logging, security and errors."""
