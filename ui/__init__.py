"""Web surfaces for Agent Studio."""
