"""Core mail composition and SMTP session logic."""
