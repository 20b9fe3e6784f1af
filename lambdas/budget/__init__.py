"""Budget settings API."""
