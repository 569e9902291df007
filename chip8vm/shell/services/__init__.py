"""ROM and machine services."""
