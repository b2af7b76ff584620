from .app import create_node_app

__all__ = ["create_node_app"]
