"""
gtdmcp - MCP server that sorts markdown checkbox tasks into GTD buckets.

Tasks live in plain markdown files (the source of truth). Every pass re-reads
them, files each task into a bucket (Today, This Week, Someday...) and writes
bucket changes back onto the task line itself.

Stack:
- Python + FastMCP (SDK oficial)
- PyYAML (bucket settings)
- Markdown (source of truth)
"""

__version__ = "0.1.0"
