"""Feed harvesting: RSS link collection and article backlog processing."""

__version__ = "0.1.0"
