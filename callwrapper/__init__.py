"""callwrapper - Spotify catalog aggregation for a front-end client."""

__version__ = "0.1.0"
