"""Digital twin knowledge base: RAG query pipeline and MCP server."""

__version__ = "1.0.0"
