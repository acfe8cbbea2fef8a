"""Face detector implementations. Import them from their modules."""
