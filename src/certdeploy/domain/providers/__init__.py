from certdeploy.domain.providers.deployer_base import DeployerProvider

__all__ = ["DeployerProvider"]
