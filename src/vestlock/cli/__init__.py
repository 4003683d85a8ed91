"""vestlock command line interface."""
