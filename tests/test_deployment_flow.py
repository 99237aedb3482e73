"""
End-to-end deployment tests.

Runs the service -> factory -> registry -> vendor deployer path with the
Tencent Cloud SDK clients mocked.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from certdeploy.models.deployment import ProviderFactoryOptions
from certdeploy.services.deployment import CertificateDeploymentService


@pytest.fixture
def mock_tencentcloud_clients(mocker):
    """Patch the Tencent Cloud SDK clients used by the EdgeOne deployer."""
    teo_client = MagicMock()
    ssl_client = MagicMock()
    mocker.patch(
        "certdeploy.infrastructure.providers.tencentcloud_eo.teo_client.TeoClient",
        return_value=teo_client,
    )
    mocker.patch(
        "certdeploy.infrastructure.providers.tencentcloud_ssl.ssl_client.SslClient",
        return_value=ssl_client,
    )
    return teo_client, ssl_client


@pytest.mark.asyncio
async def test_edgeone_wildcard_deployment(
    mock_tencentcloud_clients, certificate_pem, private_key_pem
):
    """Test a full wildcard deployment to an EdgeOne zone, then a no-op rerun."""
    teo_client, ssl_client = mock_tencentcloud_clients
    ssl_client.UploadCertificate.return_value = SimpleNamespace(
        CertificateId="cert-new", RepeatCertId=""
    )
    bound: dict[str, str] = {
        "a.example.com": "",
        "b.example.com": "cert-old",
        "sub.c.example.com": "",
    }

    def describe(request):
        return SimpleNamespace(
            AccelerationDomains=[
                SimpleNamespace(
                    DomainName=name,
                    Certificate=SimpleNamespace(
                        List=[SimpleNamespace(CertId=cert_id)] if cert_id else []
                    ),
                )
                for name, cert_id in bound.items()
            ],
            TotalCount=len(bound),
        )

    def modify(request):
        for host in request.Hosts:
            bound[host] = request.ServerCertInfo[0].CertId
        return SimpleNamespace(RequestId="req")

    teo_client.DescribeAccelerationDomains.side_effect = describe
    teo_client.ModifyHostsCertificate.side_effect = modify

    options = ProviderFactoryOptions(
        provider="tencentcloud-eo",
        access_config={"secretId": "sid", "secretKey": "skey"},
        extended_config={
            "zoneId": "zone-1",
            "matchPattern": "wildcard",
            "domains": ["*.example.com"],
        },
    )
    service = CertificateDeploymentService()

    await service.deploy(options, certificate_pem, private_key_pem)

    assert bound == {
        "a.example.com": "cert-new",
        "b.example.com": "cert-new",
        "sub.c.example.com": "",
    }
    assert teo_client.ModifyHostsCertificate.call_count == 1

    # Second run: the SSL service reports the same certificate, nothing to do
    ssl_client.UploadCertificate.return_value = SimpleNamespace(
        CertificateId="", RepeatCertId="cert-new"
    )
    await service.deploy(options, certificate_pem, private_key_pem)

    assert teo_client.ModifyHostsCertificate.call_count == 1
