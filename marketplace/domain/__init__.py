"""Pure domain types and helpers (no database or network access)."""
