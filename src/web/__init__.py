"""Web API for Arcane Odds."""
