"""PDF form filling."""
