"""Launch VS Code Server (or a VS Code tunnel) as an embedded devtools tab."""

__version__ = "0.1.0"
