"""Walking-buddy matching domain: candidate search, transitions and routing."""
