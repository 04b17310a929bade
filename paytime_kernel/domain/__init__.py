"""Pure kernel domain helpers (clock, money)."""
