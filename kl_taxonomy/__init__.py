"""Kleinanzeigen 카테고리/필드 해석 서비스"""

__version__ = "1.0.0"
