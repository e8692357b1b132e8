"""Request models for the chart API."""
