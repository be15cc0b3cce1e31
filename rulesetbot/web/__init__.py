"""FastAPI webhook receiver for the ruleset bot."""
