"""toolhost - tool-provider integration layer."""

__version__ = "0.1.0"
