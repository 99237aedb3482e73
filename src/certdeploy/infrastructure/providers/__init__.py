"""
Built-in vendor deployers.

Importing this package runs every vendor module's ``@deployer`` decorator,
which records the module's constructor for registration at startup.
"""

from certdeploy.infrastructure.providers import (  # noqa: F401
    aws_cloudfront,
    flyio,
    synology_dsm,
    tencentcloud_cdn,
    tencentcloud_eo,
    volcengine_vod,
)
