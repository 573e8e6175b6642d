from .base import DanmuHandlers
from .upstream import UpstreamDandanHandlers

__all__ = ['DanmuHandlers', 'UpstreamDandanHandlers']
