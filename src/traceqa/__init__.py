"""traceqa — Playwright scenario harness with traces, failure screenshots and an HTML run report."""

__version__ = "0.1.0"
