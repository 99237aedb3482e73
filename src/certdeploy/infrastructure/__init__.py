"""
Infrastructure layer for vendor deployments.

This module provides:
- DeployerFactory: builds deployers from provider type + untyped config
- providers: the built-in vendor deployers (Tencent Cloud EdgeOne and CDN,
  AWS CloudFront, Fly.io)
"""

from certdeploy.infrastructure.factory import DeployerFactory

__all__ = ["DeployerFactory"]
