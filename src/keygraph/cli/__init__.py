"""keygraph command line interface."""
