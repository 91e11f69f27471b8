"""codexcli: run AI-suggested code fragments against local toolchains."""

__version__ = "1.0.0"
