from .factory import get_parser

__all__ = ['get_parser']
