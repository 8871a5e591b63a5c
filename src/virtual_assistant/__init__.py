"""Virtual assistant backend: accounts, authentication and LLM command routing."""

__version__ = "1.0.0"
