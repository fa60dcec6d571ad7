"""Console MCP - expose a project's console binary as MCP tools."""

__version__ = "0.1.0"
