"""
@file        __init__.py
@brief       Dependencies package for FastAPI dependency injection
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17
"""

from .auth import get_auth_service, get_current_user, extract_token_from_header, UserContext

__all__ = ["get_auth_service", "get_current_user", "extract_token_from_header", "UserContext"]
