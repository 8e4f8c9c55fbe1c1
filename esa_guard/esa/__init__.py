"""esa.io API access."""
