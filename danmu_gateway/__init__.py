"""
弹幕 API 网关

使用方式:
    from danmu_gateway.gateway import Gateway
    from danmu_gateway.service import create_gateway
    from danmu_gateway.main import create_app
"""

from ._version import APP_VERSION

__all__ = ['APP_VERSION']
