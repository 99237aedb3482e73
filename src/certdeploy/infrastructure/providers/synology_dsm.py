"""
Synology DSM deployer.

Logs in to a DiskStation through the DSM Web API, imports the certificate
(replacing an existing one when configured) and optionally makes it the
default certificate for every service.

Access config:
    hostname: DSM hostname or IP address (required)
    port: DSM port (default 5000 for http, 5001 for https)
    scheme: http | https (default http)
    username / password: DSM administrator account (required)
    totpSecret: base32 TOTP secret for accounts with 2-factor authentication
    allowInsecureConnections: skip TLS verification
Extended config:
    certificateId: certificate to replace (optional)
    certificateName: certificate description to look up or create (optional)
    isDefault: make the certificate the default for all services
"""

import json
from dataclasses import dataclass
from typing import Any

import httpx
import pyotp

from certdeploy.config import settings
from certdeploy.deployment.cancellation import CancellationToken
from certdeploy.deployment.populate import (
    ProviderConfigModel,
    RequiredStr,
    get_bool,
    get_string,
    populate,
)
from certdeploy.deployment.registry import deployer
from certdeploy.domain.providers.deployer_base import DeployerProvider
from certdeploy.models.deployment import (
    DeploymentProviderType,
    DeploymentStage,
    DeployResult,
    ProviderFactoryOptions,
)
from certdeploy.models.errors import (
    ConfigurationError,
    DeploymentError,
    SDKRequestError,
    UploadError,
)
from certdeploy.utils.certs import split_certificate_chain

DEVICE_NAME = "certdeploy"

# REF: Synology DiskStation Manager API Guide, SYNO.API.Auth error codes
AUTH_ERROR_DESCRIPTIONS = {
    400: "Invalid password or account does not exist",
    401: "Guest or disabled account",
    402: "Permission denied",
    403: "2-factor authentication code required (OTP)",
    404: "Failed to authenticate 2-factor authentication code",
    406: "2-factor authentication code expired",
    407: "Login failed: IP has been blocked",
    408: "Expired password",
    409: "Password must be changed (password policy)",
    410: "Account locked (too many failed login attempts)",
}


class SynologyDSMAccessConfig(ProviderConfigModel):
    hostname: RequiredStr
    username: RequiredStr
    password: RequiredStr
    port: int = 0
    scheme: str = "http"
    totp_secret: str = ""
    allow_insecure_connections: bool = False


@dataclass(frozen=True)
class SynologyDSMConfig:
    hostname: str
    username: str
    password: str
    port: int = 0
    scheme: str = "http"
    totp_secret: str = ""
    allow_insecure_connections: bool = False
    certificate_id: str = ""
    certificate_name: str = ""
    is_default: bool = False

    @property
    def base_url(self) -> str:
        scheme = (self.scheme or "http").lower()
        port = self.port or (5001 if scheme == "https" else 5000)
        return f"{scheme}://{self.hostname}:{port}"


def generate_otp_code(secret: str) -> str:
    """Current TOTP code for a base32 secret as shown in authenticator apps."""
    return pyotp.TOTP(secret.replace(" ", "").upper()).now()


class SynologyDSMClient:
    """
    Minimal DSM Web API session.

    Wraps an ``httpx.AsyncClient`` whose base URL points at the DiskStation.
    """

    def __init__(self, http: httpx.AsyncClient):
        self.http = http
        self.auth_path = ""
        self.auth_version = 0
        self.sid = ""
        self.syno_token = ""

    async def _request(
        self, operation: str, method: str, url: str, **kwargs: Any
    ) -> dict[str, Any]:
        try:
            response = await self.http.request(method, url, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SDKRequestError(operation, e) from e

        if not payload.get("success"):
            code = (payload.get("error") or {}).get("code", 0)
            description = AUTH_ERROR_DESCRIPTIONS.get(code, "request failed")
            raise SDKRequestError(operation, f"code='{code}', desc='{description}'")
        return payload.get("data") or {}

    def _session_headers(self) -> dict[str, str]:
        return {"X-SYNO-TOKEN": self.syno_token}

    async def login(self, username: str, password: str, otp_code: str = "") -> None:
        """
        Open a session, discovering the auth API path first.

        Raises:
            SDKRequestError: If discovery or login fails
        """
        data = await self._request(
            "synologydsm.QueryAPIInfo",
            "GET",
            "/webapi/query.cgi",
            params={
                "api": "SYNO.API.Info",
                "version": "1",
                "method": "query",
                "query": "SYNO.API.Auth",
            },
        )
        auth_info = data.get("SYNO.API.Auth")
        if not auth_info:
            raise SDKRequestError(
                "synologydsm.QueryAPIInfo", "'SYNO.API.Auth' not found"
            )
        self.auth_path = auth_info["path"]
        self.auth_version = auth_info["maxVersion"]

        params = {
            "api": "SYNO.API.Auth",
            "version": str(self.auth_version),
            "method": "login",
            "format": "sid",
            "account": username,
            "passwd": password,
            "enable_syno_token": "yes",
        }
        if otp_code:
            params.update(
                {
                    "otp_code": otp_code,
                    "enable_device_token": "yes",
                    "device_name": DEVICE_NAME,
                }
            )

        data = await self._request(
            "synologydsm.Login", "GET", f"/webapi/{self.auth_path}", params=params
        )
        self.sid = data.get("sid") or ""
        self.syno_token = data.get("synotoken") or ""
        if not self.sid or not self.syno_token:
            raise SDKRequestError(
                "synologydsm.Login", "login succeeded but the sid or synotoken is empty"
            )

    async def logout(self) -> None:
        if not self.sid:
            return

        await self._request(
            "synologydsm.Logout",
            "GET",
            f"/webapi/{self.auth_path}",
            params={
                "api": "SYNO.API.Auth",
                "version": str(self.auth_version),
                "method": "logout",
                "_sid": self.sid,
            },
        )
        self.sid = ""
        self.syno_token = ""

    async def list_certificates(self) -> list[dict[str, Any]]:
        data = await self._request(
            "synologydsm.ListCertificates",
            "POST",
            "/webapi/entry.cgi",
            data={
                "api": "SYNO.Core.Certificate.CRT",
                "method": "list",
                "version": "1",
                "_sid": self.sid,
            },
            headers=self._session_headers(),
        )
        return data.get("certificates") or []

    async def import_certificate(
        self,
        server_pem: str,
        private_key_pem: str,
        intermediates_pem: str,
        *,
        certificate_id: str = "",
        description: str = "",
        as_default: bool = False,
    ) -> None:
        """
        Import or replace a certificate.

        ``id`` and ``desc`` are always sent; DSM rejects the import without them.
        """
        form = {"id": certificate_id, "desc": description}
        if as_default:
            form["as_default"] = "true"

        await self._request(
            "synologydsm.ImportCertificate",
            "POST",
            "/webapi/entry.cgi",
            params={
                "api": "SYNO.Core.Certificate",
                "method": "import",
                "version": "1",
                "SynoToken": self.syno_token,
                "_sid": self.sid,
            },
            # key must be the first file part
            files=[
                ("key", ("privkey.pem", private_key_pem.encode())),
                ("cert", ("cert.pem", server_pem.encode())),
                ("inter_cert", ("chain.pem", intermediates_pem.encode())),
            ],
            data=form,
            headers=self._session_headers(),
        )

    async def set_certificate_for_all_services(self, certificate_id: str) -> int:
        """
        Move every service to a certificate.

        Returns:
            Number of services reassigned
        """
        settings_list = [
            {"service": service, "old_id": certificate["id"], "id": certificate_id}
            for certificate in await self.list_certificates()
            if certificate.get("id") != certificate_id
            for service in certificate.get("services") or []
        ]
        if not settings_list:
            return 0

        await self._request(
            "synologydsm.SetServiceCertificate",
            "POST",
            "/webapi/entry.cgi",
            params={"_sid": self.sid},
            data={
                "api": "SYNO.Core.Certificate.Service",
                "method": "set",
                "version": "1",
                "settings": json.dumps(settings_list),
            },
            headers=self._session_headers(),
        )
        return len(settings_list)


class SynologyDSMDeployer(DeployerProvider):
    """Deploys certificates to a Synology DiskStation."""

    provider_type = DeploymentProviderType.SYNOLOGY_DSM.value

    def __init__(self, config: SynologyDSMConfig):
        super().__init__()
        self.config = config

    async def deploy(
        self,
        certificate_pem: str,
        private_key_pem: str,
        cancel_token: CancellationToken | None = None,
    ) -> DeployResult:
        try:
            if (self.config.scheme or "http").lower() not in ("http", "https"):
                raise ConfigurationError(
                    f"unsupported scheme: '{self.config.scheme}'", fields=["scheme"]
                )
            try:
                server_pem, intermediates_pem = split_certificate_chain(certificate_pem)
            except ValueError as e:
                raise UploadError(f"failed to upload certificate file: {e}") from e

            if cancel_token is not None:
                cancel_token.raise_if_cancelled(DeploymentStage.UPLOADING_CERTIFICATE)

            async with httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=settings.http_timeout_seconds,
                verify=not self.config.allow_insecure_connections,
            ) as http:
                client = SynologyDSMClient(http)
                await self._login(client)
                try:
                    await self._import(
                        client, server_pem, intermediates_pem, private_key_pem
                    )
                finally:
                    await self._logout(client)

        except DeploymentError as e:
            self.logger.error(f"Deployment failed: {e}")
            raise

        return DeployResult()

    async def _login(self, client: SynologyDSMClient) -> None:
        otp_code = ""
        if self.config.totp_secret:
            try:
                otp_code = generate_otp_code(self.config.totp_secret)
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"invalid TOTP secret: {e}", fields=["totpSecret"]
                ) from e
            self.logger.info("generated TOTP code for 2FA")

        self.logger.info(f"logging in to Synology DSM {self.config.hostname}")
        try:
            await client.login(self.config.username, self.config.password, otp_code)
        except SDKRequestError as e:
            raise UploadError(f"failed to login to Synology DSM: {e}") from e

    async def _logout(self, client: SynologyDSMClient) -> None:
        try:
            await client.logout()
        except SDKRequestError as e:
            self.logger.warning(f"failed to logout from Synology DSM: {e}")

    async def _import(
        self,
        client: SynologyDSMClient,
        server_pem: str,
        intermediates_pem: str,
        private_key_pem: str,
    ) -> None:
        certificate_id = self.config.certificate_id
        name = self.config.certificate_name

        if not certificate_id and name:
            self.logger.info(f"searching for certificate by name: {name}")
            try:
                certificates = await client.list_certificates()
            except SDKRequestError as e:
                raise UploadError(f"failed to list certificates: {e}") from e

            certificate_id = next(
                (c["id"] for c in certificates if c.get("desc") == name), ""
            )
            if certificate_id:
                self.logger.info(f"found existing certificate {certificate_id}")
            else:
                self.logger.info(f"certificate '{name}' not found, creating a new one")

        try:
            await client.import_certificate(
                server_pem,
                private_key_pem,
                intermediates_pem,
                certificate_id=certificate_id,
                description=name,
                as_default=self.config.is_default,
            )
        except SDKRequestError as e:
            raise UploadError(f"failed to import certificate: {e}") from e
        self.logger.info("certificate imported to Synology DSM")

        if self.config.is_default:
            await self._apply_to_all_services(client)

    async def _apply_to_all_services(self, client: SynologyDSMClient) -> None:
        # the import already succeeded; service reassignment is best effort
        try:
            certificates = await client.list_certificates()
            default_id = next(
                (c["id"] for c in certificates if c.get("is_default")), ""
            )
            if not default_id:
                self.logger.warning("no default certificate found after import")
                return
            count = await client.set_certificate_for_all_services(default_id)
        except SDKRequestError as e:
            self.logger.warning(f"failed to set certificate for all services: {e}")
            return

        self.logger.info(f"certificate {default_id} applied to {count} services")


@deployer(DeploymentProviderType.SYNOLOGY_DSM)
def create_synology_dsm_deployer(options: ProviderFactoryOptions) -> SynologyDSMDeployer:
    access = populate(options.access_config, SynologyDSMAccessConfig)
    extended = options.extended_config

    return SynologyDSMDeployer(
        SynologyDSMConfig(
            hostname=access.hostname,
            username=access.username,
            password=access.password,
            port=access.port,
            scheme=access.scheme,
            totp_secret=access.totp_secret,
            allow_insecure_connections=access.allow_insecure_connections,
            certificate_id=get_string(extended, "certificateId"),
            certificate_name=get_string(extended, "certificateName"),
            is_default=get_bool(extended, "isDefault"),
        )
    )
