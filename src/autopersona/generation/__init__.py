"""Option tables and prompt builders for character and content generation."""
