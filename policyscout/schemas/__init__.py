from .discovery import DiscoveredDocumentsResponse, ValidateContentRequest

__all__ = ["DiscoveredDocumentsResponse", "ValidateContentRequest"]
