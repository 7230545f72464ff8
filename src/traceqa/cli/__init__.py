"""TraceQA command line interface."""
