"""kops-ai - Operations automation agent with pluggable capabilities."""

__version__ = "0.1.0"
