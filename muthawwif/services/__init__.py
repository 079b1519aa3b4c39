"""Page-level data fetchers and admin actions"""

from .admin import AdminService, InvalidRequest, PermissionDenied
from .content import ContentService

__all__ = ["AdminService", "ContentService", "InvalidRequest", "PermissionDenied"]
