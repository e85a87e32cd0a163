from .router import add_documents_api, get_workspace, router

__all__ = ["add_documents_api", "get_workspace", "router"]
