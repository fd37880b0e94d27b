"""Application core: settings, logging, errors and middleware."""
