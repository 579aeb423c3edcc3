"""lazycurl - interactive curl command builder for the terminal."""

__version__ = "0.3.0"
