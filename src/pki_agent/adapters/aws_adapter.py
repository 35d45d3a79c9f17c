"""
AWS Secrets Manager certificate store adapter

Each certificate lives in one secret whose binary value is the PKCS#12
bundle (certificate, private key, chain). Importing an existing name adds a
new secret version, so the latest import wins.
"""
import asyncio
import base64
import json
import logging
from typing import Optional, List, Dict, Any
from botocore.exceptions import ClientError, BotoCoreError
from cryptography.hazmat.primitives import serialization

from .base_adapter import BaseCertificateStore
from .. import pem_codec
from ..credentials import AwsCredentialProvider
from ...shared.exceptions import CertificateNotFoundError, StoreOperationError, ParseError
from ...shared.interfaces import ICredentialProvider
from ...shared.models import CertificatePolicy

logger = logging.getLogger(__name__)

CERTIFICATE_TAG = "pki-agent:certificate"


class AwsSecretsCertificateStore(BaseCertificateStore):
    """Certificate store backed by AWS Secrets Manager"""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        credential_provider: Optional[ICredentialProvider] = None,
        client=None
    ):
        super().__init__(config, credential_provider)

        self.region = self.config.get("aws_region") or "us-east-1"
        self.recovery_window_days = self.config.get("recovery_window_days", 7)

        if client is None:
            if self.credential_provider is None:
                self.credential_provider = AwsCredentialProvider(
                    profile_name=self.config.get("aws_profile"),
                    access_key_id=self.config.get("aws_access_key_id"),
                    secret_access_key=self.config.get("aws_secret_access_key"),
                    region_name=self.region
                )
            session = self.credential_provider.create_session()
            client = session.client("secretsmanager", region_name=self.region)
        self.secrets_client = client

    async def _call(self, operation: str, **kwargs) -> Dict[str, Any]:
        """Run one blocking Secrets Manager call off the event loop"""
        method = getattr(self.secrets_client, operation)
        try:
            return await asyncio.to_thread(method, **kwargs)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceNotFoundException":
                raise CertificateNotFoundError(
                    f"Certificate {kwargs.get('SecretId', kwargs.get('Name'))} not found"
                )
            raise StoreOperationError(f"Secrets Manager {operation} failed: {str(e)}")
        except BotoCoreError as e:
            raise StoreOperationError(f"Secrets Manager {operation} failed: {str(e)}")

    async def _get_bundle(self, name: str, version: Optional[str]) -> bytes:
        params = {"SecretId": name}
        if version:
            params["VersionId"] = version
        response = await self._call("get_secret_value", **params)
        if "SecretBinary" not in response:
            raise StoreOperationError(f"Secret {name} does not hold a certificate bundle")
        return response["SecretBinary"]

    async def get_certificate(self, name: str, version: Optional[str] = None) -> bytes:
        bundle = await self._get_bundle(name, version)
        try:
            certificate = pem_codec.load_certificate_from_bundle(bundle)
        except ParseError as e:
            raise StoreOperationError(f"Secret {name} holds an unreadable bundle: {str(e)}")
        return certificate.public_bytes(serialization.Encoding.DER)

    async def get_secret(self, name: str, version: Optional[str] = None) -> str:
        bundle = await self._get_bundle(name, version)
        return base64.b64encode(bundle).decode("ascii")

    async def list_certificates(self) -> List[str]:
        names = []
        params = {"Filters": [{"Key": "tag-key", "Values": [CERTIFICATE_TAG]}]}
        while True:
            page = await self._call("list_secrets", **params)
            names.extend(entry["Name"] for entry in page.get("SecretList", []))
            next_token = page.get("NextToken")
            if not next_token:
                return names
            params["NextToken"] = next_token

    async def import_certificate(
        self,
        name: str,
        bundle: bytes,
        policy: Optional[CertificatePolicy] = None
    ) -> str:
        policy = policy or CertificatePolicy()
        try:
            response = await self._call("put_secret_value", SecretId=name, SecretBinary=bundle)
            logger.info(f"Imported certificate {name} as new version {response.get('VersionId')}")
        except CertificateNotFoundError:
            response = await self._call(
                "create_secret",
                Name=name,
                SecretBinary=bundle,
                Description=json.dumps(policy.model_dump()),
                Tags=[
                    {"Key": CERTIFICATE_TAG, "Value": policy.key_type},
                    {"Key": "pki-agent:issuer", "Value": policy.issuer_name},
                ]
            )
            logger.info(f"Imported certificate {name} into new secret")
        return response.get("Name", name)

    async def delete_certificate(self, name: str) -> bool:
        await self._call(
            "delete_secret",
            SecretId=name,
            RecoveryWindowInDays=self.recovery_window_days
        )
        logger.info(f"Scheduled deletion of certificate {name} in {self.recovery_window_days} days")
        return True
