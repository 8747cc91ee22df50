# ABOUTME: Shelfmatch matches photographed shelf items against a reference product catalog.
# ABOUTME: Package root; exposes the version string used by the CLI and HTTP user agent.

__version__ = "0.1.0"
