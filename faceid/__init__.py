"""Face identity recognition and enrollment service."""
