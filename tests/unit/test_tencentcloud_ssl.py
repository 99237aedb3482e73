"""Tests for the Tencent Cloud SSL uploader and shared SDK helpers."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from tencentcloud.common.exception.tencent_cloud_sdk_exception import (
    TencentCloudSDKException,
)

from certdeploy.infrastructure.providers.tencentcloud_ssl import (
    SSL_INTL_ENDPOINT,
    TencentCloudSSLUploader,
    call_sdk,
    create_client_profile,
    ssl_endpoint_for,
)
from certdeploy.models.errors import SDKRequestError


@pytest.fixture
def mock_ssl_client():
    return MagicMock()


@pytest.fixture
def uploader(mock_ssl_client):
    return TencentCloudSSLUploader("sid", "skey", sdk_client=mock_ssl_client)


@pytest.mark.asyncio
async def test_upload_returns_new_certificate_id(uploader, mock_ssl_client):
    """Test a fresh upload returns the new certificate id."""
    mock_ssl_client.UploadCertificate.return_value = SimpleNamespace(
        CertificateId="cert-new", RepeatCertId=""
    )

    result = await uploader.upload("CERT PEM", "KEY PEM")

    assert result.certificate_id == "cert-new"
    assert result.certificate_name.startswith("certdeploy_")
    request = mock_ssl_client.UploadCertificate.call_args[0][0]
    assert request.CertificatePublicKey == "CERT PEM"
    assert request.CertificatePrivateKey == "KEY PEM"
    assert request.CertificateType == "SVR"
    assert request.Repeatable is False


@pytest.mark.asyncio
async def test_upload_reuses_repeated_certificate(uploader, mock_ssl_client):
    """Test an already uploaded certificate yields the existing id."""
    mock_ssl_client.UploadCertificate.return_value = SimpleNamespace(
        CertificateId="", RepeatCertId="cert-existing"
    )

    result = await uploader.upload("CERT PEM", "KEY PEM")

    assert result.certificate_id == "cert-existing"


@pytest.mark.asyncio
async def test_upload_wraps_sdk_errors(uploader, mock_ssl_client):
    """Test SDK failures name the failing operation."""
    mock_ssl_client.UploadCertificate.side_effect = TencentCloudSDKException(
        "FailedOperation", "certificate is invalid"
    )

    with pytest.raises(SDKRequestError) as exc_info:
        await uploader.upload("CERT PEM", "KEY PEM")

    assert exc_info.value.operation == "ssl.UploadCertificate"
    assert "ssl.UploadCertificate" in str(exc_info.value)


def test_call_sdk_does_not_log_secret_requests():
    """Test requests carrying key material are never logged."""
    log = MagicMock()
    request = MagicMock()

    call_sdk(log, "ssl.UploadCertificate", lambda req: "ok", request, log_request=False)

    request.to_json_string.assert_not_called()


def test_call_sdk_returns_response():
    """Test the SDK response is passed through."""
    log = MagicMock()
    request = MagicMock()
    request.to_json_string.return_value = "{}"

    assert call_sdk(log, "teo.Describe", lambda req: "response", request) == "response"


def test_ssl_endpoint_for_international_site():
    """Test the SSL endpoint follows the product endpoint's site."""
    assert ssl_endpoint_for("teo.intl.tencentcloudapi.com") == SSL_INTL_ENDPOINT
    assert ssl_endpoint_for("teo.tencentcloudapi.com") == ""
    assert ssl_endpoint_for("") == ""


def test_create_client_profile_endpoint():
    """Test a custom endpoint is set on the HTTP profile."""
    profile = create_client_profile("cdn.intl.tencentcloudapi.com")

    assert profile.httpProfile.endpoint == "cdn.intl.tencentcloudapi.com"
