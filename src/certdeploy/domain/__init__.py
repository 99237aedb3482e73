"""
Domain layer - deployer contracts.

This package contains:
- Providers: the DeployerProvider contract implemented by every vendor
"""
