from .nowplaying_cli import main

__all__ = ['main']
