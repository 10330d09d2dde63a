"""openfda-mcp: MCP server for openFDA drug shortages, recalls, labels and adverse events."""

__version__ = "0.1.0"
