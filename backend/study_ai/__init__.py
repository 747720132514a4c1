"""Study AI - study assistant proxy and client."""
__version__ = "0.1.0"
