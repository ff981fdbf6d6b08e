"""Photo-to-nutrition scan pipeline."""
